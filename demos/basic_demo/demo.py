"""Supervisor demo: a robot drives toward a box and the controller pushes the box away."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Optional

PACKAGE_ROOT = Path(__file__).resolve().parents[2]
if str(PACKAGE_ROOT) not in sys.path:
    sys.path.insert(0, str(PACKAGE_ROOT))

from low_level_interface.interface import SF_VEC3F, NodeQuery, TaggedValue
from low_level_interface.world import World

from core import ProxyConfig, Supervisor
from scene_proxy import Vec3

ROBOT_SPEED = 0.25  # m/s along +x
CAMERA_SIZE = (6, 8)  # height, width


def build_world(seed: int = 7) -> World:
    world = World(name="push_demo", random_seed=seed, basic_time_step=32.0)
    world.add_node({"type": "WorldInfo", "fields": {"title": "Push demo", "info": ["robot pushes a box"]}})
    robot = world.add_node(
        {
            "type": "Robot",
            "label": "BOT",
            "fields": {"name": "bot", "supervisor": True},
            "children": [
                {"type": "DistanceSensor", "fields": {"name": "ds_front", "translation": (0.1, 0.0, 0.0)}},
                {"type": "GPS", "fields": {"name": "gps"}},
                {
                    "type": "Camera",
                    "fields": {"name": "cam", "height": CAMERA_SIZE[0], "width": CAMERA_SIZE[1]},
                },
            ],
        }
    )
    box = world.add_node(
        {
            "type": "Solid",
            "label": "BOX",
            "fields": {"name": "box", "translation": (1.0, 0.0, 0.0)},
            "children": [
                {
                    "type": "Shape",
                    "fields": {
                        "appearance": {
                            "type": "Appearance",
                            "fields": {"material": {"type": "Material", "fields": {"diffuseColor": (0.9, 0.2, 0.1)}}},
                        },
                        "geometry": {"type": "Box", "fields": {"size": (0.2, 0.2, 0.2)}},
                    },
                }
            ],
        }
    )

    def robot_x(w: World) -> float:
        return w.node_record(robot).fields["translation"].data[0]

    def drive(w: World) -> None:
        record = w.node_record(robot)
        x, y, z = record.fields["translation"].data
        dx = ROBOT_SPEED * w.basic_time_step / 1000.0
        record.fields["translation"] = TaggedValue(SF_VEC3F, (x + dx, y, z))

    def distance(w: World) -> float:
        gap = w.node_record(box).fields["translation"].data[0] - robot_x(w) - 0.1
        return max(0.0, gap + w.rng.gauss(0.0, 0.002))

    def position(w: World) -> tuple:
        return w.node_record(robot).fields["translation"].data

    def frame(w: World) -> bytes:
        height, width = CAMERA_SIZE
        shade = min(255, int(255 * robot_x(w) / 2.0))
        return bytes([shade, shade, shade, 255]) * (height * width)

    world.on_step(drive)
    for name, reader in (("ds_front", distance), ("gps", position), ("cam", frame)):
        world.attach_reader(world.find_node(NodeQuery("device", name)), reader)
    return world


def run_demo(steps: int = 200, save_path: Optional[Path] = None, config: Optional[ProxyConfig] = None) -> Dict[str, object]:
    world = build_world()
    supervisor = Supervisor(world, config)
    box = supervisor.get("BOX")
    distance = supervisor.device("ds_front")
    gps = supervisor.device("gps")
    camera = supervisor.device("cam")
    pushes = 0
    brightness = 0.0

    for _ in supervisor.steps(steps):
        if distance < 0.15:
            box.translation += Vec3(0.5, 0.0, 0.0)
            box.children.append({"type": "Solid", "fields": {"name": f"marker_{pushes}"}})
            pushes += 1
        brightness = float(camera.value.copy().mean())

    summary = {
        "steps": supervisor.step_count,
        "pushes": pushes,
        "robot": tuple(gps.value),
        "box": tuple(box.translation),
        "markers": len(box.children) - 1,
        "brightness": brightness,
    }
    if save_path is not None:
        supervisor.save_world(save_path)
    return summary


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--steps", type=int, default=200)
    parser.add_argument("--save", type=Path, default=None, help="write a JSON snapshot of the final world")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    summary = run_demo(args.steps, args.save, ProxyConfig(log_level=args.log_level))
    for key, value in summary.items():
        print(f"{key}: {value}")


if __name__ == "__main__":
    main()
