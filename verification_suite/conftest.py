"""Shared fixtures: a small reference scene and a Supervisor over it."""
from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

SIM_ROOT = Path(__file__).resolve().parents[1]
if str(SIM_ROOT) not in sys.path:
    sys.path.insert(0, str(SIM_ROOT))

from low_level_interface.interface import NodeQuery  # noqa: E402
from low_level_interface.world import World  # noqa: E402

from core import ProxyConfig, Supervisor  # noqa: E402


def build_scene_world(**kwargs) -> World:
    """Scene used across the suite.

    Root children, in document order: WorldInfo, ROBOT (devices plus
    ARM -> HAND), BOX (with a red Shape), BALL (with Physics), PATH (empty).
    Device readings are deterministic functions of the step index.
    """
    world = World(name="suite", random_seed=1, **kwargs)
    world.add_node({"type": "WorldInfo", "fields": {"title": "suite", "info": ["a", "b"]}})
    world.add_node(
        {
            "type": "Robot",
            "label": "ROBOT",
            "fields": {"name": "robot"},
            "children": [
                {"type": "DistanceSensor", "label": "DS", "fields": {"name": "ds"}},
                {"type": "TouchSensor", "fields": {"name": "bumper"}},
                {"type": "GPS", "fields": {"name": "gps"}},
                {"type": "Camera", "fields": {"name": "camera", "height": 2, "width": 3}},
                {"type": "RangeFinder", "fields": {"name": "depth", "height": 2, "width": 2, "maxRange": 5.0}},
                {
                    "type": "Solid",
                    "label": "ARM",
                    "fields": {"name": "arm"},
                    "children": [{"type": "Solid", "label": "HAND", "fields": {"name": "hand"}}],
                },
            ],
        }
    )
    world.add_node(
        {
            "type": "Solid",
            "label": "BOX",
            "fields": {"name": "box", "translation": (1.0, 2.0, 3.0)},
            "children": [
                {
                    "type": "Shape",
                    "fields": {
                        "appearance": {
                            "type": "Appearance",
                            "fields": {"material": {"type": "Material", "fields": {"diffuseColor": (1.0, 0.0, 0.0)}}},
                        },
                        "geometry": {"type": "Box", "fields": {"size": (0.5, 0.5, 0.5)}},
                    },
                }
            ],
        }
    )
    world.add_node(
        {
            "type": "Solid",
            "label": "BALL",
            "fields": {"name": "ball", "translation": (0.0, 0.0, 1.0), "physics": {"type": "Physics", "fields": {"mass": 2.0}}},
        }
    )
    world.add_node({"type": "Transform", "label": "PATH"})

    readers = {
        "ds": lambda w: 1.0 - 0.1 * w.step_index,
        "bumper": lambda w: w.step_index % 2 == 1,
        "gps": lambda w: (float(w.step_index), 0.0, 0.0),
        "camera": lambda w: bytes([w.step_index % 256]) * (2 * 3 * 4),
        "depth": lambda w: np.full((2, 2), w.step_index, dtype=np.float32).tobytes(),
    }
    for name, reader in readers.items():
        world.attach_reader(world.find_node(NodeQuery("device", name)), reader)
    world.calls.clear()
    return world


@pytest.fixture
def world() -> World:
    return build_scene_world()


@pytest.fixture
def supervisor(world: World) -> Supervisor:
    return Supervisor(world)


@pytest.fixture
def make_supervisor(world: World):
    def _make(**config) -> Supervisor:
        return Supervisor(world, ProxyConfig(**config))

    return _make
