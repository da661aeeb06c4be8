"""Smoke test for the push demo controller loop."""
from __future__ import annotations

import sys
from pathlib import Path

SIM_ROOT = Path(__file__).resolve().parents[1]
if str(SIM_ROOT) not in sys.path:
    sys.path.insert(0, str(SIM_ROOT))

from demos.basic_demo.demo import run_demo  # noqa: E402


def test_demo_pushes_the_box_and_saves(tmp_path):
    target = tmp_path / "push.json"
    summary = run_demo(steps=150, save_path=target)
    assert summary["steps"] == 150
    assert summary["pushes"] >= 1
    assert summary["markers"] == summary["pushes"]
    assert summary["box"][0] > 1.0
    assert summary["robot"][0] > 1.0
    assert target.exists()
