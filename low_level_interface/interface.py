"""The narrow state-query contract every simulation engine backend provides."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

# Field kind tags, as reported by get_field().
SF_BOOL = "SFBool"
SF_INT32 = "SFInt32"
SF_FLOAT = "SFFloat"
SF_STRING = "SFString"
SF_VEC2F = "SFVec2f"
SF_VEC3F = "SFVec3f"
SF_ROTATION = "SFRotation"
SF_COLOR = "SFColor"
SF_NODE = "SFNode"
MF_BOOL = "MFBool"
MF_INT32 = "MFInt32"
MF_FLOAT = "MFFloat"
MF_STRING = "MFString"
MF_VEC2F = "MFVec2f"
MF_VEC3F = "MFVec3f"
MF_ROTATION = "MFRotation"
MF_COLOR = "MFColor"
MF_NODE = "MFNode"

SINGLE_KINDS = (SF_BOOL, SF_INT32, SF_FLOAT, SF_STRING, SF_VEC2F, SF_VEC3F, SF_ROTATION, SF_COLOR, SF_NODE)
MULTI_KINDS = (MF_BOOL, MF_INT32, MF_FLOAT, MF_STRING, MF_VEC2F, MF_VEC3F, MF_ROTATION, MF_COLOR, MF_NODE)

# Device reading kinds, as reported by read_device().
READ_BOOL = "bool"
READ_SCALAR = "scalar"
READ_VECTOR = "vector"
READ_LIST = "list"
READ_IMAGE = "image"

NodeSpec = Union[str, Mapping[str, Any]]


class EngineError(Exception):
    """Failure reported by the engine: malformed value, bad index, type mismatch, unknown handle."""


def is_multi(kind: str) -> bool:
    return kind.startswith("MF")


def single_kind(kind: str) -> str:
    """Element kind of a multi-valued kind (MFVec3f -> SFVec3f)."""
    return "SF" + kind[2:] if is_multi(kind) else kind


@dataclass(frozen=True)
class TaggedValue:
    """Engine-native value plus the kind tag describing its layout."""

    kind: str
    data: Any


@dataclass(frozen=True)
class RawImage:
    """Bulk device memory owned by the engine; overwritten in place by later samples."""

    buffer: Any
    shape: Tuple[int, ...]
    dtype: str = "uint8"


@dataclass(frozen=True)
class NodeQuery:
    """find_node() request. kind is one of root, id, label, type, device."""

    kind: str
    value: Any = None
    scope: Optional[int] = None


@dataclass(frozen=True)
class NodeInfo:
    handle: int
    type_name: str
    label: Optional[str]
    field_names: Tuple[str, ...]
    field_kinds: Mapping[str, str] = field(default_factory=dict)
    parent: Optional[int] = None
    parent_field: Optional[str] = None
    read_only: FrozenSet[str] = frozenset()
    device_name: Optional[str] = None


@runtime_checkable
class SimulationInterface(Protocol):
    """Operations the access layer consumes. Implementations raise EngineError on failure."""

    basic_time_step: float

    def find_node(self, query: NodeQuery) -> Optional[int]:
        ...

    def describe_node(self, handle: int) -> NodeInfo:
        ...

    def get_field(self, handle: int, name: str) -> TaggedValue:
        ...

    def set_field(self, handle: int, name: str, value: TaggedValue) -> None:
        ...

    def import_node(
        self,
        parent: int,
        index: int,
        spec: NodeSpec,
        field: str = "children",
        replace: bool = False,
    ) -> int:
        ...

    def remove_node(self, handle: int) -> None:
        ...

    def step(self, timeout: Optional[float] = None) -> bool:
        ...

    def read_device(self, handle: int) -> TaggedValue:
        ...

    def enable_sampling(self, handle: int, period: Optional[float]) -> None:
        ...

    def save_world(self, path: Optional[str] = None) -> bool:
        ...


__all__ = [
    "EngineError",
    "TaggedValue",
    "RawImage",
    "NodeQuery",
    "NodeInfo",
    "NodeSpec",
    "SimulationInterface",
    "is_multi",
    "single_kind",
]
