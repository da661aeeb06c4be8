"""Supervisor stepping loop, world saving and trace capture."""
from __future__ import annotations

import json
import logging

import pytest

from scene_proxy import ExternalInterfaceError


def test_steps_stop_when_the_engine_terminates(supervisor, world):
    world.on_step(lambda w: w.stop() if w.step_index == 2 else None)
    seen = list(supervisor.steps())
    assert seen == [1, 2]
    assert supervisor.step_count == 3
    assert supervisor.step() is False


def test_steps_respect_the_limit(supervisor, world):
    assert list(supervisor.steps(4)) == [1, 2, 3, 4]
    assert world.step_index == 4
    assert world.time == pytest.approx(4 * 0.032)


def test_run_calls_the_controller_after_each_step(supervisor):
    ds = supervisor.device("ds")
    readings = []
    taken = supervisor.run(lambda sup: readings.append(float(ds)), max_steps=3)
    assert taken == 3
    assert readings == pytest.approx([0.9, 0.8, 0.7])


def test_step_timeout_overrides_the_basic_time_step(supervisor, world):
    supervisor.step(64)
    assert world.time == pytest.approx(0.064)


def test_save_world_writes_a_snapshot(supervisor, tmp_path, caplog):
    supervisor.get("BOX").translation = (9.0, 9.0, 9.0)
    target = tmp_path / "out" / "world.json"
    with caplog.at_level(logging.INFO, logger="core"):
        assert supervisor.save_world(target) is True
    assert "World saved" in caplog.text
    snapshot = json.loads(target.read_text(encoding="utf-8"))
    box = snapshot["root"]["fields"]["children"][2]
    assert box["label"] == "BOX"
    assert box["fields"]["translation"] == [9.0, 9.0, 9.0]


def test_save_world_without_a_path_is_wrapped(supervisor):
    with pytest.raises(ExternalInterfaceError) as excinfo:
        supervisor.save_world()
    assert excinfo.value.operation == "save_world"


def test_trace_log_records_each_step(supervisor, tmp_path):
    streamed = []
    supervisor.enable_trace_logging(callback=streamed.append)
    supervisor.get("PATH").children.append("Solid")
    supervisor.step()
    supervisor.step()
    trace = supervisor.export_trace_log()
    assert [entry["step"] for entry in trace] == [1, 2]
    assert trace[0]["structure_generation"] == 1
    assert streamed == trace
    path = tmp_path / "trace.json"
    supervisor.save_trace_log(path)
    assert len(json.loads(path.read_text(encoding="utf-8"))) == 2


def test_root_and_basic_time_step(supervisor):
    assert supervisor.root.type_name == "Root"
    assert supervisor.root.parent is None
    assert supervisor.basic_time_step == 32.0
    assert "Supervisor(step=0" in repr(supervisor)
