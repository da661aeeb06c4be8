"""Narrow simulation-engine interface plus an in-memory reference engine."""

from .interface import (
    EngineError,
    NodeInfo,
    NodeQuery,
    NodeSpec,
    RawImage,
    SimulationInterface,
    TaggedValue,
)
from .entities import NODE_TEMPLATES, NodeTemplate, SceneNode, EngineDevice
from .world import World

__all__ = [
    "EngineError",
    "NodeInfo",
    "NodeQuery",
    "NodeSpec",
    "RawImage",
    "SimulationInterface",
    "TaggedValue",
    "NODE_TEMPLATES",
    "NodeTemplate",
    "SceneNode",
    "EngineDevice",
    "World",
]
