"""Node and field proxies: attribute-style navigation over the scene tree."""
from __future__ import annotations

from typing import Any, Dict, Hashable, Iterator, List, Mapping, Optional, Tuple, TYPE_CHECKING

from low_level_interface.interface import NodeInfo, NodeSpec

from .compat import legacy_attribute
from .errors import NoSuchFieldError, NodeLookupError, ReadOnlyError, StaleReferenceError, external_call
from .schema import FIELD_SCHEMA, FieldSchema, schema_for, to_engine, to_python

if TYPE_CHECKING:  # pragma: no cover
    from .base import Device
    from .cache import ProxyCache

_UNSET = object()

# Device searches match on this field.
DEVICE_NAME_FIELD = "name"


def _node_spec(value: Any) -> NodeSpec:
    if isinstance(value, Node):
        return value.as_spec()
    if isinstance(value, (str, Mapping)):
        return value
    raise TypeError(f"Expected a node spec (str or mapping) or a Node, got {type(value).__name__}")


class Node:
    """Proxy for one scene node.

    Attribute access resolves in order: declared field names (installed as
    properties below), any other field the node reports, then a depth-first
    search of the subtree by label, type or device name. Proxies are
    created only by the cache, so one handle always maps to one object.
    """

    __slots__ = ("_cache", "_info", "_stale", "_fields", "__weakref__")

    def __init__(self, cache: "ProxyCache", info: NodeInfo) -> None:
        self._cache = cache
        self._info = info
        self._stale = False
        self._fields: Dict[str, Field] = {}

    def __repr__(self) -> str:
        label = f" '{self._info.label}'" if self._info.label else ""
        state = " stale" if self._stale else ""
        return f"<Node #{self._info.handle} {self._info.type_name}{label}{state}>"

    # --- Liveness -----------------------------------------------------------

    @property
    def is_stale(self) -> bool:
        return self._stale

    def _live(self) -> NodeInfo:
        if self._stale:
            raise StaleReferenceError(f"{self!r} was removed or replaced")
        if not self._cache.config.caching:
            self._info = self._cache.describe(self._info.handle)
        return self._info

    def _mark_stale(self) -> None:
        self._stale = True

    # --- Identity -----------------------------------------------------------

    @property
    def handle(self) -> int:
        return self._live().handle

    @property
    def type_name(self) -> str:
        return self._live().type_name

    @property
    def label(self) -> Optional[str]:
        return self._live().label

    @property
    def field_names(self) -> Tuple[str, ...]:
        return self._live().field_names

    @property
    def parent(self) -> Optional["Node"]:
        info = self._live()
        if info.parent is None:
            return None
        return self._cache.get_or_create_proxy(info.parent)

    @property
    def parent_field(self) -> Optional["Field"]:
        info = self._live()
        if info.parent is None:
            return None
        return self._cache.get_or_create_proxy(info.parent).field(info.parent_field)

    @property
    def lineage(self) -> Tuple["Node", ...]:
        """Ancestors from the root down to this node's parent."""
        chain: List[Node] = []
        node = self.parent
        while node is not None:
            chain.append(node)
            node = node.parent
        return tuple(reversed(chain))

    @property
    def device(self) -> "Device":
        return self._cache.get_or_create_device(self._live().handle)

    # --- Fields -------------------------------------------------------------

    def field(self, name: str) -> "Field":
        info = self._live()
        kind = info.field_kinds.get(name)
        if kind is None:
            raise NoSuchFieldError(f"{self!r} has no field '{name}'")
        fld = self._fields.get(name)
        if fld is None:
            fld = self._fields[name] = Field(self, name, schema_for(name, kind))
        return fld

    def has_field(self, name: str) -> bool:
        return name in self._live().field_kinds

    def get(self, key: Hashable) -> Any:
        """Field value (or the Field itself for lists), else the first matching descendant."""
        info = self._live()
        if isinstance(key, str) and key in info.field_kinds:
            return self.field(key)._read()
        try:
            handle = self._cache.resolver.resolve(key, info.handle)
        except NodeLookupError:
            raise NoSuchFieldError(f"{self!r} has no field or descendant matching {key!r}") from None
        return self._cache.get_or_create_proxy(handle)

    def set(self, name: str, value: Any) -> Optional["Node"]:
        return self.field(name).set(value)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if name in FIELD_SCHEMA:
            # A declared field property raised: the node has no such field.
            raise NoSuchFieldError(f"{self!r} has no field '{name}'")
        shim = legacy_attribute(self, name, self._cache)
        if shim is not None:
            return shim
        return self.get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_") or hasattr(type(self), name):
            object.__setattr__(self, name, value)
        else:
            self.set(name, value)

    def __getitem__(self, key: Hashable) -> Any:
        return self.get(key)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    # --- Tree ---------------------------------------------------------------

    def child_nodes(self) -> List["Node"]:
        """Direct children across every node-holding field, in field order."""
        result: List[Node] = []
        for name in self._live().field_names:
            fld = self.field(name)
            if not fld.holds_nodes:
                continue
            if fld.is_multi:
                result.extend(fld)
            else:
                child = fld.value
                if child is not None:
                    result.append(child)
        return result

    def descendants(self) -> Iterator["Node"]:
        for child in self.child_nodes():
            yield child
            yield from child.descendants()

    def __iter__(self) -> Iterator["Node"]:
        return iter(self.child_nodes())

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, Node):
            return False
        return any(ancestor is self for ancestor in item.lineage)

    def remove(self) -> None:
        """Remove this node from the scene; this proxy and its descendants go stale."""
        info = self._live()
        if info.parent is None:
            # The interface decides whether a parentless node may go.
            with external_call("remove_node"):
                self._cache.interface.remove_node(info.handle)
            self._cache.invalidate(info.handle)
            return
        self._cache.get_or_create_proxy(info.parent).field(info.parent_field)._remove_child(info.handle)

    def as_spec(self) -> Dict[str, Any]:
        """Mapping spec that recreates this subtree through import_node."""
        info = self._live()
        spec: Dict[str, Any] = {"type": info.type_name}
        if info.label:
            spec["label"] = info.label
        fields: Dict[str, Any] = {}
        for name in info.field_names:
            fld = self.field(name)
            if not fld.holds_nodes:
                fields[name] = fld.value
            elif fld.is_multi:
                fields[name] = [child.as_spec() for child in fld]
            else:
                child = fld.value
                fields[name] = None if child is None else child.as_spec()
        spec["fields"] = fields
        return spec


def _declared_field(name: str) -> property:
    def getter(self: Node) -> Any:
        return self.field(name)._read()

    def setter(self: Node, value: Any) -> None:
        self.set(name, value)

    return property(getter, setter, doc=f"The '{name}' field ({FIELD_SCHEMA[name].kind}).")


for _name in FIELD_SCHEMA:
    if not hasattr(Node, _name):
        setattr(Node, _name, _declared_field(_name))


class Field:
    """One named field of a node.

    Single-valued fields expose ``value``. Multi-valued fields also behave
    as a mutable sequence; node lists return Node proxies and accept node
    specs (a type string, ``"DEF LABEL Type"`` or a mapping) or existing
    Nodes, which are copied. Values are read at most once per step and
    writes go through to the cached copy.
    """

    __slots__ = ("_node", "name", "schema", "_value", "_generation")

    def __init__(self, node: Node, name: str, schema: FieldSchema) -> None:
        self._node = node
        self.name = name
        self.schema = schema
        self._value: Any = _UNSET
        self._generation = -1

    def __repr__(self) -> str:
        return f"<Field {self.name} ({self.kind}) of {self._node!r}>"

    def __getattr__(self, name: str) -> Any:
        if not name.startswith("_"):
            shim = legacy_attribute(self, name, self._node._cache)
            if shim is not None:
                return shim
        raise AttributeError(f"'Field' object has no attribute '{name}'")

    @property
    def kind(self) -> str:
        return self.schema.kind

    @property
    def is_multi(self) -> bool:
        return self.schema.is_multi

    @property
    def holds_nodes(self) -> bool:
        return self.schema.holds_nodes

    @property
    def read_only(self) -> bool:
        return self.name in self._node._live().read_only

    @property
    def node(self) -> Node:
        self._node._live()
        return self._node

    # --- Raw access ---------------------------------------------------------

    def _raw(self) -> Any:
        self._node._live()
        cache = self._node._cache
        if cache.config.caching and self._value is not _UNSET:
            # Node lists only change through this process; values change every step.
            if self.holds_nodes or self._generation == cache.generation:
                return self._value
        with external_call("get_field"):
            tagged = cache.interface.get_field(self._node._info.handle, self.name)
        self._store(to_python(tagged, self.schema))
        return self._value

    def _store(self, value: Any) -> None:
        self._value = value
        self._generation = self._node._cache.generation

    def _materialize(self, data: Any) -> Any:
        if self.holds_nodes:
            cache = self._node._cache
            if self.is_multi:
                return [cache.get_or_create_proxy(handle) for handle in data]
            return None if data is None else cache.get_or_create_proxy(data)
        return list(data) if self.is_multi else data

    def _read(self) -> Any:
        return self if self.is_multi else self.value

    def _check_writable(self) -> None:
        if self.read_only:
            raise ReadOnlyError(f"Field '{self.name}' of {self._node!r} is read-only")

    def _require_multi(self) -> None:
        if not self.is_multi:
            raise TypeError(f"Field '{self.name}' ({self.kind}) is not a sequence")

    def _position(self, index: Any, size: int) -> int:
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"{self.name} indices must be integers, not {type(index).__name__}")
        position = index + size if index < 0 else index
        if not 0 <= position < size:
            raise IndexError(f"{self.name} index {index} out of range (size {size})")
        return position

    # --- Values -------------------------------------------------------------

    @property
    def value(self) -> Any:
        return self._materialize(self._raw())

    @value.setter
    def value(self, value: Any) -> None:
        self.set(value)

    @property
    def cached_value(self) -> Any:
        """Last value read or written, without consulting the interface. None if never loaded."""
        self._node._live()
        if self._value is _UNSET:
            return None
        return self._materialize(self._value)

    def set(self, value: Any) -> Optional[Node]:
        """Write a value. Single node fields take a spec, a Node, or None to clear."""
        self._node._live()
        self._check_writable()
        if self.holds_nodes:
            if self.is_multi:
                raise TypeError(f"'{self.name}' holds a node list; assign, insert or delete elements instead")
            return self._set_node(value)
        self._write(value)
        return None

    def _write(self, value: Any) -> None:
        tagged = to_engine(value, self.kind)
        cache = self._node._cache
        with external_call("set_field"):
            cache.interface.set_field(self._node._info.handle, self.name, tagged)
        self._store(to_python(tagged, self.schema))
        if self.name == DEVICE_NAME_FIELD:
            cache.note_rename(self._node._info.handle, tagged.data)

    def _set_node(self, value: Any) -> Optional[Node]:
        cache = self._node._cache
        old = self._raw()
        if value is None:
            if old is not None:
                self._remove_child(old)
            return None
        spec = _node_spec(value)
        with external_call("import_node"):
            new = cache.interface.import_node(
                self._node._info.handle, 0, spec, field=self.name, replace=old is not None
            )
        if old is None:
            cache.note_structure_change()
        else:
            cache.invalidate(old)
        self._store(new)
        return cache.get_or_create_proxy(new)

    def _remove_child(self, child: int) -> None:
        self._check_writable()
        data = self._raw()
        cache = self._node._cache
        with external_call("remove_node"):
            cache.interface.remove_node(child)
        cache.invalidate(child)
        if self.is_multi:
            data.remove(child)
        else:
            self._store(None)

    # --- Sequence protocol --------------------------------------------------

    def __bool__(self) -> bool:
        return len(self) > 0 if self.is_multi else True

    def __len__(self) -> int:
        self._require_multi()
        return len(self._raw())

    def __iter__(self) -> Iterator[Any]:
        self._require_multi()
        return iter(self._materialize(self._raw()))

    def __contains__(self, item: object) -> bool:
        self._require_multi()
        return item in self._materialize(self._raw())

    def index(self, item: Any) -> int:
        self._require_multi()
        return self._materialize(self._raw()).index(item)

    def __getitem__(self, key: Any) -> Any:
        self._require_multi()
        data = self._raw()
        if isinstance(key, slice):
            return self._materialize(data[key])
        return self._materialize([data[self._position(key, len(data))]])[0]

    def __setitem__(self, key: Any, value: Any) -> None:
        self._require_multi()
        self._check_writable()
        data = self._raw()
        if not self.holds_nodes:
            updated = list(data)
            if isinstance(key, slice):
                updated[key] = list(value)
            else:
                updated[self._position(key, len(data))] = value
            self._write(updated)
            return
        if isinstance(key, slice):
            raise TypeError("Slice assignment is not supported on node lists")
        position = self._position(key, len(data))
        old = data[position]
        cache = self._node._cache
        with external_call("import_node"):
            new = cache.interface.import_node(
                self._node._info.handle, position, _node_spec(value), field=self.name, replace=True
            )
        cache.invalidate(old)
        data[position] = new

    def __delitem__(self, key: Any) -> None:
        self._require_multi()
        self._check_writable()
        data = self._raw()
        if not self.holds_nodes:
            updated = list(data)
            del updated[key if isinstance(key, slice) else self._position(key, len(data))]
            self._write(updated)
            return
        if isinstance(key, slice):
            raise TypeError("Slice deletion is not supported on node lists")
        self._remove_child(data[self._position(key, len(data))])

    def insert(self, index: int, value: Any) -> Optional[Node]:
        """Insert before index, clamped like list.insert. Node lists return the new proxy."""
        self._require_multi()
        self._check_writable()
        data = self._raw()
        size = len(data)
        position = max(0, index + size) if index < 0 else min(index, size)
        if not self.holds_nodes:
            updated = list(data)
            updated.insert(position, value)
            self._write(updated)
            return None
        cache = self._node._cache
        with external_call("import_node"):
            new = cache.interface.import_node(self._node._info.handle, position, _node_spec(value), field=self.name)
        cache.note_structure_change()
        data.insert(position, new)
        return cache.get_or_create_proxy(new)

    def append(self, value: Any) -> Optional[Node]:
        self._require_multi()
        return self.insert(len(self._raw()), value)

    def pop(self, index: int = -1) -> Any:
        """Remove and return an element. Node lists return the removed node's spec."""
        self._require_multi()
        item = self[index]
        if self.holds_nodes:
            item = item.as_spec()
        del self[index]
        return item


__all__ = ["Node", "Field"]
