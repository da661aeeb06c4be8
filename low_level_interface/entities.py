"""Node records, node templates and device state for the reference engine."""
from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple, TYPE_CHECKING

from .interface import (
    EngineError,
    MF_NODE,
    MF_STRING,
    READ_BOOL,
    READ_IMAGE,
    READ_SCALAR,
    READ_VECTOR,
    SF_BOOL,
    SF_COLOR,
    SF_FLOAT,
    SF_INT32,
    SF_NODE,
    SF_ROTATION,
    SF_STRING,
    SF_VEC2F,
    SF_VEC3F,
    MF_VEC3F,
    TaggedValue,
    is_multi,
    single_kind,
)

if TYPE_CHECKING:  # pragma: no cover
    from .world import World

_ARITY = {SF_VEC2F: 2, SF_VEC3F: 3, SF_COLOR: 3, SF_ROTATION: 4}


@dataclass(frozen=True)
class NodeTemplate:
    """Declared field layout for one engine node type."""

    type_name: str
    fields: Tuple[Tuple[str, str, Any], ...]
    read_only: FrozenSet[str] = frozenset()
    reading: Optional[str] = None
    image_channels: int = 0
    image_dtype: str = "uint8"

    def extended(
        self,
        type_name: str,
        *fields: Tuple[str, str, Any],
        read_only: FrozenSet[str] = frozenset(),
        reading: Optional[str] = None,
        image_channels: int = 0,
        image_dtype: str = "uint8",
    ) -> "NodeTemplate":
        return NodeTemplate(
            type_name=type_name,
            fields=self.fields + tuple(fields),
            read_only=self.read_only | read_only,
            reading=reading,
            image_channels=image_channels,
            image_dtype=image_dtype,
        )


_TRANSFORM = NodeTemplate(
    "Transform",
    (
        ("translation", SF_VEC3F, (0.0, 0.0, 0.0)),
        ("rotation", SF_ROTATION, (0.0, 0.0, 1.0, 0.0)),
        ("scale", SF_VEC3F, (1.0, 1.0, 1.0)),
        ("children", MF_NODE, None),
    ),
)
_SOLID = _TRANSFORM.extended(
    "Solid",
    ("name", SF_STRING, "solid"),
    ("description", SF_STRING, ""),
    ("boundingObject", SF_NODE, None),
    ("physics", SF_NODE, None),
)
_SENSOR = _SOLID.extended("Sensor")

NODE_TEMPLATES: Dict[str, NodeTemplate] = {
    "Root": NodeTemplate("Root", (("children", MF_NODE, None),)),
    "Group": NodeTemplate("Group", (("children", MF_NODE, None),)),
    "Transform": _TRANSFORM,
    "Solid": _SOLID,
    "Robot": _SOLID.extended(
        "Robot",
        ("controller", SF_STRING, "<generic>"),
        ("supervisor", SF_BOOL, False),
        ("customData", SF_STRING, ""),
    ),
    "WorldInfo": NodeTemplate(
        "WorldInfo",
        (
            ("title", SF_STRING, ""),
            ("basicTimeStep", SF_FLOAT, 32.0),
            ("gravity", SF_FLOAT, 9.81),
            ("info", MF_STRING, None),
        ),
        read_only=frozenset({"basicTimeStep"}),
    ),
    "Viewpoint": NodeTemplate(
        "Viewpoint",
        (
            ("position", SF_VEC3F, (0.0, 0.0, 10.0)),
            ("orientation", SF_ROTATION, (0.0, 0.0, 1.0, 0.0)),
            ("fieldOfView", SF_FLOAT, 0.785398),
        ),
    ),
    "Shape": NodeTemplate("Shape", (("appearance", SF_NODE, None), ("geometry", SF_NODE, None))),
    "Appearance": NodeTemplate("Appearance", (("material", SF_NODE, None),)),
    "Material": NodeTemplate(
        "Material",
        (
            ("diffuseColor", SF_COLOR, (0.8, 0.8, 0.8)),
            ("emissiveColor", SF_COLOR, (0.0, 0.0, 0.0)),
            ("transparency", SF_FLOAT, 0.0),
        ),
    ),
    "Box": NodeTemplate("Box", (("size", SF_VEC3F, (2.0, 2.0, 2.0)),)),
    "Sphere": NodeTemplate("Sphere", (("radius", SF_FLOAT, 1.0), ("subdivision", SF_INT32, 1))),
    "Physics": NodeTemplate(
        "Physics",
        (("density", SF_FLOAT, 1000.0), ("mass", SF_FLOAT, -1.0), ("centerOfMass", MF_VEC3F, None)),
    ),
    "DistanceSensor": _SENSOR.extended(
        "DistanceSensor", ("lookupTable", MF_VEC3F, None), reading=READ_SCALAR
    ),
    "LightSensor": _SENSOR.extended("LightSensor", reading=READ_SCALAR),
    "TouchSensor": _SENSOR.extended("TouchSensor", reading=READ_BOOL),
    "GPS": _SENSOR.extended("GPS", reading=READ_VECTOR),
    "Accelerometer": _SENSOR.extended("Accelerometer", reading=READ_VECTOR),
    "Camera": _SENSOR.extended(
        "Camera",
        ("width", SF_INT32, 64),
        ("height", SF_INT32, 64),
        ("fieldOfView", SF_FLOAT, 0.785398),
        read_only=frozenset({"width", "height"}),
        reading=READ_IMAGE,
        image_channels=4,
    ),
    "RangeFinder": _SENSOR.extended(
        "RangeFinder",
        ("width", SF_INT32, 64),
        ("height", SF_INT32, 64),
        ("maxRange", SF_FLOAT, 1.0),
        read_only=frozenset({"width", "height"}),
        reading=READ_IMAGE,
        image_channels=1,
        image_dtype="float32",
    ),
}


def coerce_value(kind: str, value: Any) -> Any:
    """Validate and normalise a raw value for storage under the given kind."""
    if is_multi(kind):
        if value is None:
            return []
        if isinstance(value, (str, bytes)):
            raise EngineError(f"{kind} expects a sequence, got {value!r}")
        return [coerce_value(single_kind(kind), item) for item in value]
    if kind == SF_BOOL:
        return bool(value)
    if kind == SF_INT32:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
            raise EngineError(f"SFInt32 expects an integer, got {value!r}")
        return int(value)
    if kind == SF_FLOAT:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise EngineError(f"SFFloat expects a number, got {value!r}")
        return float(value)
    if kind == SF_STRING:
        if not isinstance(value, str):
            raise EngineError(f"SFString expects a str, got {value!r}")
        return value
    if kind in _ARITY:
        try:
            items = tuple(float(v) for v in value)
        except (TypeError, ValueError) as exc:
            raise EngineError(f"{kind} expects {_ARITY[kind]} numbers, got {value!r}") from exc
        if len(items) != _ARITY[kind] or not all(math.isfinite(v) for v in items):
            raise EngineError(f"{kind} expects {_ARITY[kind]} finite numbers, got {value!r}")
        if kind == SF_COLOR and not all(0.0 <= v <= 1.0 for v in items):
            raise EngineError(f"SFColor components must lie in [0, 1], got {value!r}")
        return items
    if kind == SF_NODE:
        return value
    raise EngineError(f"Unknown field kind '{kind}'")


@dataclass
class SceneNode:
    """One vertex of the engine-side scene tree."""

    handle: int
    type_name: str
    label: Optional[str] = None
    fields: Dict[str, TaggedValue] = field(default_factory=dict)
    read_only: FrozenSet[str] = frozenset()
    parent: Optional[int] = None
    parent_field: Optional[str] = None

    def field_kind(self, name: str) -> str:
        try:
            return self.fields[name].kind
        except KeyError:
            raise EngineError(f"Node #{self.handle} ({self.type_name}) has no field '{name}'") from None

    def child_handles(self) -> List[int]:
        """Handles of direct children, in document order."""
        handles: List[int] = []
        for tagged in self.fields.values():
            if tagged.kind == MF_NODE:
                handles.extend(tagged.data)
            elif tagged.kind == SF_NODE and tagged.data is not None:
                handles.append(tagged.data)
        return handles

    def as_dict(self, world: "World") -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        for name, tagged in self.fields.items():
            if tagged.kind == MF_NODE:
                fields[name] = [world.node_record(h).as_dict(world) for h in tagged.data]
            elif tagged.kind == SF_NODE:
                fields[name] = world.node_record(tagged.data).as_dict(world) if tagged.data is not None else None
            elif is_multi(tagged.kind):
                fields[name] = [list(v) if isinstance(v, tuple) else v for v in tagged.data]
            else:
                fields[name] = list(tagged.data) if isinstance(tagged.data, tuple) else tagged.data
        return {"type": self.type_name, "label": self.label, "handle": self.handle, "fields": fields}


DeviceReader = Callable[["World"], Any]


@dataclass
class EngineDevice:
    """Sampling state for a device node."""

    handle: int
    reading: str
    reader: Optional[DeviceReader] = None
    period: Optional[float] = None
    sample: Any = None
    elapsed: float = 0.0
    image_shape: Tuple[int, ...] = ()
    image_dtype: str = "uint8"
    buffer: Optional[bytearray] = None

    @property
    def enabled(self) -> bool:
        return self.period is not None

    def due(self, dt: float) -> bool:
        if self.period is None:
            return False
        self.elapsed += dt
        if self.elapsed + 1e-9 >= self.period:
            self.elapsed = 0.0
            return True
        return False


__all__ = ["NodeTemplate", "NODE_TEMPLATES", "SceneNode", "EngineDevice", "DeviceReader", "coerce_value"]
