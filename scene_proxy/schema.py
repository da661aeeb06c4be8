"""Declared per-field-name schema and engine <-> Python value marshaling."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Type

from low_level_interface.interface import (
    MF_COLOR,
    MF_FLOAT,
    MF_NODE,
    MF_STRING,
    MF_VEC3F,
    RawImage,
    READ_BOOL,
    READ_IMAGE,
    READ_LIST,
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
    TaggedValue,
    is_multi,
    single_kind,
)

from .buffers import BufferView, GenerationClock
from .vectors import Color, Rotation, Vec2, Vec3, VectorValue

VALUE_TYPES: Dict[str, Type[VectorValue]] = {
    SF_VEC2F: Vec2,
    SF_VEC3F: Vec3,
    SF_COLOR: Color,
    SF_ROTATION: Rotation,
}

NODE_KINDS = (SF_NODE, MF_NODE)


@dataclass(frozen=True)
class FieldSchema:
    kind: str
    value_type: Optional[Type[VectorValue]] = None

    @property
    def is_multi(self) -> bool:
        return is_multi(self.kind)

    @property
    def holds_nodes(self) -> bool:
        return self.kind in NODE_KINDS


FIELD_SCHEMA: Dict[str, FieldSchema] = {
    "children": FieldSchema(MF_NODE),
    "translation": FieldSchema(SF_VEC3F, Vec3),
    "rotation": FieldSchema(SF_ROTATION, Rotation),
    "scale": FieldSchema(SF_VEC3F, Vec3),
    "size": FieldSchema(SF_VEC3F, Vec3),
    "position": FieldSchema(SF_VEC3F, Vec3),
    "orientation": FieldSchema(SF_ROTATION, Rotation),
    "name": FieldSchema(SF_STRING),
    "description": FieldSchema(SF_STRING),
    "controller": FieldSchema(SF_STRING),
    "customData": FieldSchema(SF_STRING),
    "title": FieldSchema(SF_STRING),
    "info": FieldSchema(MF_STRING),
    "supervisor": FieldSchema(SF_BOOL),
    "diffuseColor": FieldSchema(SF_COLOR, Color),
    "emissiveColor": FieldSchema(SF_COLOR, Color),
    "transparency": FieldSchema(SF_FLOAT),
    "radius": FieldSchema(SF_FLOAT),
    "mass": FieldSchema(SF_FLOAT),
    "density": FieldSchema(SF_FLOAT),
    "centerOfMass": FieldSchema(MF_VEC3F, Vec3),
    "lookupTable": FieldSchema(MF_VEC3F, Vec3),
    "recognitionColors": FieldSchema(MF_COLOR, Color),
    "fieldOfView": FieldSchema(SF_FLOAT),
    "width": FieldSchema(SF_INT32),
    "height": FieldSchema(SF_INT32),
    "boundingObject": FieldSchema(SF_NODE),
    "physics": FieldSchema(SF_NODE),
    "appearance": FieldSchema(SF_NODE),
    "geometry": FieldSchema(SF_NODE),
    "material": FieldSchema(SF_NODE),
    "weights": FieldSchema(MF_FLOAT),
}


def schema_for(name: str, kind: str) -> FieldSchema:
    """Declared schema for a field name, falling back to the engine's kind tag."""
    declared = FIELD_SCHEMA.get(name)
    if declared is not None and declared.kind == kind:
        return declared
    if declared is not None and declared.value_type is not None and VALUE_TYPES.get(single_kind(kind)) is not None:
        # Same arity, different tag (e.g. a color stored as SFVec3f): keep the declared Python type.
        if len(declared.value_type.components) == len(VALUE_TYPES[single_kind(kind)].components):
            return FieldSchema(kind, declared.value_type)
    return FieldSchema(kind, VALUE_TYPES.get(single_kind(kind)))


def _to_python_single(data: Any, kind: str, value_type: Optional[Type[VectorValue]]) -> Any:
    if data is None:
        return None
    if value_type is not None:
        return value_type(data)
    if kind == SF_FLOAT:
        return float(data)
    if kind == SF_INT32:
        return int(data)
    if kind == SF_BOOL:
        return bool(data)
    return data


def to_python(tagged: TaggedValue, schema: FieldSchema) -> Any:
    """Materialize a fresh Python value from an engine tagged value."""
    if schema.holds_nodes:
        return list(tagged.data) if schema.is_multi else tagged.data
    element = single_kind(tagged.kind)
    if is_multi(tagged.kind):
        return [_to_python_single(item, element, schema.value_type) for item in tagged.data]
    return _to_python_single(tagged.data, element, schema.value_type)


def _to_engine_single(value: Any, kind: str) -> Any:
    value_type = VALUE_TYPES.get(kind)
    if value_type is not None:
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            raise TypeError(f"{kind} expects {len(value_type.components)} numbers, got {value!r}")
        return tuple(value_type(value))
    if kind == SF_FLOAT:
        if isinstance(value, bool):
            raise TypeError(f"SFFloat expects a number, got {value!r}")
        return float(value)
    if kind == SF_INT32:
        if isinstance(value, bool) or int(value) != value:
            raise ValueError(f"SFInt32 expects an integer, got {value!r}")
        return int(value)
    if kind == SF_BOOL:
        return bool(value)
    if kind == SF_STRING:
        if not isinstance(value, str):
            raise TypeError(f"SFString expects a str, got {value!r}")
        return value
    return value


def to_engine(value: Any, kind: str) -> TaggedValue:
    """Build the tagged value the engine expects for a field of the given kind."""
    if is_multi(kind):
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            raise TypeError(f"{kind} expects a sequence, got {value!r}")
        element = single_kind(kind)
        return TaggedValue(kind, [_to_engine_single(item, element) for item in value])
    return TaggedValue(kind, _to_engine_single(value, kind))


def reading_to_python(tagged: TaggedValue, clock: GenerationClock, *, name: Optional[str] = None) -> Any:
    """Convert a device sample; bulk samples become step-scoped BufferViews."""
    data = tagged.data
    if data is None:
        return None
    if tagged.kind == READ_BOOL:
        return bool(data)
    if tagged.kind == READ_SCALAR:
        return float(data)
    if tagged.kind == READ_VECTOR:
        return Vec3(data) if len(data) == 3 else VectorValue(data)
    if tagged.kind == READ_LIST:
        return tuple(data)
    if tagged.kind == READ_IMAGE:
        if not isinstance(data, RawImage):
            raise TypeError(f"Image reading must carry RawImage, got {type(data).__name__}")
        return BufferView.from_raw(data, clock, name=name)
    return data


__all__ = [
    "FieldSchema",
    "FIELD_SCHEMA",
    "VALUE_TYPES",
    "schema_for",
    "to_python",
    "to_engine",
    "reading_to_python",
]
