"""In-memory reference engine implementing the narrow simulation interface."""
from __future__ import annotations

from collections import Counter
import json
from pathlib import Path
import random
from typing import Any, Callable, Dict, Iterator, List, Mapping, MutableMapping, Optional

from .entities import NODE_TEMPLATES, DeviceReader, EngineDevice, NodeTemplate, SceneNode, coerce_value
from .interface import (
    EngineError,
    MF_NODE,
    NodeInfo,
    NodeQuery,
    NodeSpec,
    RawImage,
    READ_BOOL,
    READ_IMAGE,
    READ_LIST,
    READ_SCALAR,
    READ_VECTOR,
    SF_NODE,
    TaggedValue,
)

_ITEMSIZE = {"uint8": 1, "float32": 4}
_DEFAULT_SAMPLES = {READ_BOOL: False, READ_SCALAR: 0.0, READ_VECTOR: (0.0, 0.0, 0.0), READ_LIST: ()}


def parse_spec(spec: NodeSpec) -> Dict[str, Any]:
    """Normalise a node spec: "Type", "DEF LABEL Type" or a mapping."""
    if isinstance(spec, str):
        words = spec.split()
        if len(words) == 1:
            return {"type": words[0]}
        if len(words) == 3 and words[0] == "DEF":
            return {"type": words[2], "label": words[1]}
        raise EngineError(f"Cannot parse node spec {spec!r}")
    if not isinstance(spec, Mapping) or "type" not in spec:
        raise EngineError(f"Node spec needs a 'type' entry, got {spec!r}")
    return dict(spec)


class World:
    """Owns the scene tree, device sampling and deterministic randomness."""

    def __init__(
        self,
        *,
        name: str = "world",
        random_seed: Optional[int] = None,
        basic_time_step: float = 32.0,
        save_path: Optional[Path] = None,
        metadata: Optional[MutableMapping[str, object]] = None,
    ) -> None:
        self.name = name
        self.basic_time_step = basic_time_step
        self.save_path = save_path
        self.time: float = 0.0
        self.step_index: int = 0
        self.random_seed = random_seed
        self._rng = random.Random(random_seed)
        self.metadata: MutableMapping[str, object] = metadata or {}
        self.calls: Counter = Counter()
        self._nodes: Dict[int, SceneNode] = {}
        self._devices: Dict[int, EngineDevice] = {}
        self._next_handle = 0
        self._step_callbacks: List[Callable[["World"], None]] = []
        self._running = True
        self.root_handle = self._build({"type": "Root"}, None, None, [])

    @property
    def rng(self) -> random.Random:
        return self._rng

    # --- Scene setup (not part of the narrow interface) -------------------

    def add_node(self, spec: NodeSpec, parent: Optional[int] = None, *, field: str = "children") -> int:
        """Append a node under parent without counting it as an interface call."""
        parent = self.root_handle if parent is None else parent
        record = self.node_record(parent)
        tagged = record.fields.get(field)
        index = len(tagged.data) if tagged is not None and tagged.kind == MF_NODE else 0
        handle = self._import(parent, index, spec, field, replace=False)
        return handle

    def attach_reader(self, handle: int, reader: DeviceReader) -> None:
        self._device(handle).reader = reader

    def on_step(self, callback: Callable[["World"], None]) -> None:
        self._step_callbacks.append(callback)

    def stop(self) -> None:
        self._running = False

    def node_record(self, handle: int) -> SceneNode:
        try:
            return self._nodes[handle]
        except KeyError:
            raise EngineError(f"Unknown node handle {handle}") from None

    # --- Narrow interface ---------------------------------------------------

    def find_node(self, query: NodeQuery) -> Optional[int]:
        self.calls["find_node"] += 1
        if query.kind == "root":
            return self.root_handle
        if query.kind == "id":
            return query.value if query.value in self._nodes else None
        scope = self.root_handle if query.scope is None else query.scope
        self.node_record(scope)
        if query.kind == "label":
            match = lambda rec: rec.label == query.value  # noqa: E731
        elif query.kind == "type":
            match = lambda rec: rec.type_name == query.value  # noqa: E731
        elif query.kind == "device":
            match = lambda rec: rec.handle in self._devices and self._device_name(rec) == query.value  # noqa: E731
        else:
            raise EngineError(f"Unsupported query kind '{query.kind}'")
        for handle in self._iter_descendants(scope):
            if match(self._nodes[handle]):
                return handle
        return None

    def describe_node(self, handle: int) -> NodeInfo:
        self.calls["describe_node"] += 1
        record = self.node_record(handle)
        return NodeInfo(
            handle=record.handle,
            type_name=record.type_name,
            label=record.label,
            field_names=tuple(record.fields),
            field_kinds={name: tagged.kind for name, tagged in record.fields.items()},
            parent=record.parent,
            parent_field=record.parent_field,
            read_only=record.read_only,
            device_name=self._device_name(record) if handle in self._devices else None,
        )

    def get_field(self, handle: int, name: str) -> TaggedValue:
        self.calls["get_field"] += 1
        record = self.node_record(handle)
        record.field_kind(name)
        tagged = record.fields[name]
        data = list(tagged.data) if isinstance(tagged.data, list) else tagged.data
        return TaggedValue(tagged.kind, data)

    def set_field(self, handle: int, name: str, value: TaggedValue) -> None:
        self.calls["set_field"] += 1
        record = self.node_record(handle)
        kind = record.field_kind(name)
        if name in record.read_only:
            raise EngineError(f"Field '{name}' of node #{handle} is read-only")
        if kind in (SF_NODE, MF_NODE):
            raise EngineError(f"Field '{name}' holds nodes; use import_node/remove_node")
        if value.kind != kind:
            raise EngineError(f"Type mismatch for '{name}': field is {kind}, value is {value.kind}")
        record.fields[name] = TaggedValue(kind, coerce_value(kind, value.data))

    def import_node(
        self,
        parent: int,
        index: int,
        spec: NodeSpec,
        field: str = "children",
        replace: bool = False,
    ) -> int:
        self.calls["import_node"] += 1
        return self._import(parent, index, spec, field, replace)

    def remove_node(self, handle: int) -> None:
        self.calls["remove_node"] += 1
        if handle == self.root_handle:
            raise EngineError("The root node cannot be removed")
        record = self.node_record(handle)
        container = self._nodes[record.parent].fields[record.parent_field]
        if container.kind == MF_NODE:
            container.data.remove(handle)
        else:
            self._nodes[record.parent].fields[record.parent_field] = TaggedValue(SF_NODE, None)
        self._discard_subtree(handle)

    def step(self, timeout: Optional[float] = None) -> bool:
        self.calls["step"] += 1
        if not self._running:
            return False
        dt = self.basic_time_step if timeout is None else timeout
        for callback in self._step_callbacks:
            callback(self)
        self.time += dt / 1000.0
        self.step_index += 1
        for device in self._devices.values():
            if device.due(dt):
                self._take_sample(device)
        return self._running

    def read_device(self, handle: int) -> TaggedValue:
        self.calls["read_device"] += 1
        device = self._device(handle)
        return TaggedValue(device.reading, device.sample)

    def enable_sampling(self, handle: int, period: Optional[float]) -> None:
        self.calls["enable_sampling"] += 1
        device = self._device(handle)
        if period is None or period <= 0:
            device.period = None
            device.sample = None
            return
        device.period = float(period)
        device.elapsed = 0.0
        self._take_sample(device)

    def save_world(self, path: Optional[str] = None) -> bool:
        self.calls["save_world"] += 1
        target = Path(path) if path is not None else self.save_path
        if target is None:
            raise EngineError("No path given and the world has no save_path")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("w", encoding="utf-8") as f:
                json.dump(self.snapshot_dict(), f, indent=2)
        except OSError as exc:
            raise EngineError(f"Could not save world to {target}: {exc}") from exc
        return True

    # --- Introspection ------------------------------------------------------

    def summary(self) -> str:
        return f"World(name={self.name}, time={self.time:.3f}, nodes={len(self._nodes)})"

    def snapshot_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "time": self.time,
            "step": self.step_index,
            "root": self._nodes[self.root_handle].as_dict(self),
            "metadata": dict(self.metadata),
        }

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[SceneNode]:
        return iter(list(self._nodes.values()))

    # --- Helpers ------------------------------------------------------------

    def _iter_descendants(self, handle: int) -> Iterator[int]:
        for child in self._nodes[handle].child_handles():
            yield child
            yield from self._iter_descendants(child)

    def _device(self, handle: int) -> EngineDevice:
        try:
            return self._devices[handle]
        except KeyError:
            raise EngineError(f"Node #{handle} is not a device") from None

    def _device_name(self, record: SceneNode) -> Optional[str]:
        tagged = record.fields.get("name")
        return tagged.data if tagged is not None else None

    def _import(self, parent: int, index: int, spec: NodeSpec, field: str, replace: bool) -> int:
        record = self.node_record(parent)
        kind = record.field_kind(field)
        if field in record.read_only:
            raise EngineError(f"Field '{field}' of node #{parent} is read-only")
        container = record.fields[field]
        if kind == MF_NODE:
            size = len(container.data)
            if index == -1 and not replace:
                index = size
            upper = size if replace else size + 1
            if not 0 <= index < upper:
                raise EngineError(f"Index {index} out of range for '{field}' of node #{parent} (size {size})")
        elif kind == SF_NODE:
            if container.data is not None and not replace:
                raise EngineError(f"Field '{field}' of node #{parent} is already occupied")
        else:
            raise EngineError(f"Field '{field}' of node #{parent} does not hold nodes")
        created: List[int] = []
        handle = self._build(spec, parent, field, created)
        if kind == MF_NODE:
            if replace:
                self._discard_subtree(container.data[index])
                container.data[index] = handle
            else:
                container.data.insert(index, handle)
        else:
            if container.data is not None:
                self._discard_subtree(container.data)
            record.fields[field] = TaggedValue(SF_NODE, handle)
        return handle

    def _build(self, spec: NodeSpec, parent: Optional[int], parent_field: Optional[str], created: List[int]) -> int:
        try:
            return self._build_node(parse_spec(spec), parent, parent_field, created)
        except EngineError:
            for handle in created:
                self._nodes.pop(handle, None)
                self._devices.pop(handle, None)
            created.clear()
            raise

    def _build_node(
        self, spec: Dict[str, Any], parent: Optional[int], parent_field: Optional[str], created: List[int]
    ) -> int:
        template = NODE_TEMPLATES.get(spec["type"])
        if template is None:
            raise EngineError(f"Unknown node type '{spec['type']}'")
        overrides = dict(spec.get("fields") or {})
        if "children" in spec:
            overrides["children"] = spec["children"]
        declared = {name for name, _, _ in template.fields}
        unknown = set(overrides) - declared
        if unknown:
            raise EngineError(f"{template.type_name} has no field(s) {sorted(unknown)}")
        handle = self._next_handle
        self._next_handle += 1
        record = SceneNode(
            handle=handle,
            type_name=template.type_name,
            label=spec.get("label") or spec.get("DEF"),
            read_only=template.read_only,
            parent=parent,
            parent_field=parent_field,
        )
        self._nodes[handle] = record
        created.append(handle)
        for name, kind, default in template.fields:
            raw = overrides.get(name, default)
            if isinstance(raw, TaggedValue):
                raw = raw.data
            if kind == MF_NODE:
                children = [self._build_node(parse_spec(s), handle, name, created) for s in raw or ()]
                record.fields[name] = TaggedValue(kind, children)
            elif kind == SF_NODE:
                child = None if raw is None else self._build_node(parse_spec(raw), handle, name, created)
                record.fields[name] = TaggedValue(kind, child)
            else:
                record.fields[name] = TaggedValue(kind, coerce_value(kind, raw))
        if template.reading is not None:
            self._devices[handle] = self._make_device(record, template)
        return handle

    def _make_device(self, record: SceneNode, template: NodeTemplate) -> EngineDevice:
        device = EngineDevice(handle=record.handle, reading=template.reading)
        if template.reading == READ_IMAGE:
            shape = (record.fields["height"].data, record.fields["width"].data)
            if template.image_channels > 1:
                shape = shape + (template.image_channels,)
            size = _ITEMSIZE[template.image_dtype]
            for dim in shape:
                size *= dim
            device.image_shape = shape
            device.image_dtype = template.image_dtype
            device.buffer = bytearray(size)
        return device

    def _take_sample(self, device: EngineDevice) -> None:
        if device.reading == READ_IMAGE:
            if device.reader is not None:
                data = memoryview(device.reader(self)).cast("B")
                if len(data) != len(device.buffer):
                    raise EngineError(
                        f"Image reader for #{device.handle} produced {len(data)} bytes, expected {len(device.buffer)}"
                    )
                device.buffer[:] = data
            device.sample = RawImage(device.buffer, device.image_shape, device.image_dtype)
            return
        if device.reader is None:
            device.sample = _DEFAULT_SAMPLES[device.reading]
        else:
            device.sample = device.reader(self)

    def _discard_subtree(self, handle: int) -> None:
        for child in self._nodes[handle].child_handles():
            self._discard_subtree(child)
        self._nodes.pop(handle, None)
        self._devices.pop(handle, None)


__all__ = ["World", "parse_spec"]
