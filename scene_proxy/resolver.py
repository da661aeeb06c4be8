"""Turns human keys (labels, type tags, device names, ids) into node handles."""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Hashable, Optional, TYPE_CHECKING

from low_level_interface.interface import NodeQuery

from .errors import NodeLookupError, external_call

if TYPE_CHECKING:  # pragma: no cover
    from .cache import ProxyCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ByLabel:
    label: str


@dataclass(frozen=True)
class ByType:
    type_name: str


@dataclass(frozen=True)
class ByDevice:
    name: str


# Plain string keys try each of these in turn.
_STRING_CASCADE = ("label", "type", "device")


class Resolver:
    """Resolves keys within a scope, consulting the interface only on cache miss.

    Label, type and device searches are depth-first over the whole subtree
    below the scope, so intermediate levels never need to be named. When
    several nodes match, the first one in document order wins. Dotted
    strings such as ``"ROBOT.CAMERA"`` resolve one segment at a time, each
    within the node found for the previous segment.
    """

    def __init__(self, cache: "ProxyCache") -> None:
        self._cache = cache

    def resolve(self, key: Hashable, scope: Optional[int] = None) -> int:
        if scope is None:
            scope = self._cache.root_handle
        if isinstance(key, str) and "." in key:
            handle = scope
            for segment in key.split("."):
                handle = self.resolve(segment, handle)
            return handle
        cached = self._cache.lookup_entry(scope, key)
        if cached is not None:
            return cached
        handle = self._query(key, scope)
        if handle is None:
            raise NodeLookupError(f"No node matching {key!r} under #{scope}")
        logger.debug("Resolved %r under #%s to #%s", key, scope, handle)
        self._cache.store_entry(scope, key, handle)
        return handle

    def find(self, key: Hashable, scope: Optional[int] = None) -> Optional[int]:
        try:
            return self.resolve(key, scope)
        except NodeLookupError:
            return None

    def _query(self, key: Hashable, scope: int) -> Optional[int]:
        if isinstance(key, bool):
            raise TypeError(f"Cannot resolve boolean key {key!r}")
        if isinstance(key, int):
            return self._find(NodeQuery("id", key))
        if isinstance(key, ByLabel):
            return self._find(NodeQuery("label", key.label, scope))
        if isinstance(key, ByType):
            return self._find(NodeQuery("type", key.type_name, scope))
        if isinstance(key, ByDevice):
            return self._find(NodeQuery("device", key.name, scope))
        if isinstance(key, str):
            for kind in _STRING_CASCADE:
                handle = self._find(NodeQuery(kind, key, scope))
                if handle is not None:
                    return handle
            return None
        raise TypeError(f"Unsupported key type {type(key).__name__}")

    def _find(self, query: NodeQuery) -> Optional[int]:
        with external_call("find_node"):
            return self._cache.interface.find_node(query)


__all__ = ["Resolver", "ByLabel", "ByType", "ByDevice"]
