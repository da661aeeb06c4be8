"""Identity map of node proxies plus the resolution cache and its invalidation."""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Dict, Hashable, Iterator, List, Optional, Set, Tuple

from low_level_interface.interface import NodeInfo, NodeQuery, SimulationInterface

from .base import Device
from .compat import DeprecationAdvisor
from .errors import NodeLookupError, StaleReferenceError, external_call
from .nodes import Node
from .resolver import Resolver
from .sensors import DEVICE_TYPES

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Resolved (scope, key) -> handle, valid while the structure generation matches."""

    scope: int
    key: Hashable
    handle: int
    generation: int


class ProxyCache:
    """Sole owner of proxy identity.

    Two counters drive invalidation. ``structure_generation`` moves whenever
    this process imports, removes or renames nodes; resolution entries recorded under
    an older structure generation are re-verified before use. ``generation``
    moves once per completed simulation step; field values and device
    samples are reused only within the step they were read in.
    """

    def __init__(
        self,
        interface: SimulationInterface,
        config,
        advisor: Optional[DeprecationAdvisor] = None,
    ) -> None:
        self.interface = interface
        self.config = config
        self.advisor = advisor or DeprecationAdvisor(config)
        self.resolver = Resolver(self)
        self.generation = 0
        self.structure_generation = 0
        self._proxies: Dict[int, Node] = {}
        self._children: Dict[int, Set[int]] = {}
        self._retired: Set[int] = set()
        self._entries: Dict[Tuple[int, Hashable], CacheEntry] = {}
        self._devices: Dict[int, Device] = {}
        self._root_handle: Optional[int] = None

    @property
    def root_handle(self) -> int:
        if self._root_handle is None:
            with external_call("find_node"):
                handle = self.interface.find_node(NodeQuery("root"))
            if handle is None:
                raise NodeLookupError("The interface reported no root node")
            self._root_handle = handle
        return self._root_handle

    # --- Proxies ------------------------------------------------------------

    def describe(self, handle: int) -> NodeInfo:
        with external_call("describe_node"):
            return self.interface.describe_node(handle)

    def get_or_create_proxy(self, handle: int) -> Node:
        """Return the single live proxy for handle, creating it on first use."""
        if handle in self._retired:
            raise StaleReferenceError(f"Node #{handle} was removed or replaced")
        proxy = self._proxies.get(handle)
        if proxy is not None:
            return proxy
        info = self.describe(handle)
        proxy = Node(self, info)
        self._proxies[handle] = proxy
        logger.debug("Created proxy for #%s (%s)", handle, info.type_name)
        if info.parent is not None:
            self._children.setdefault(info.parent, set()).add(handle)
            # Ancestors must be known for invalidate() to reach this proxy.
            if info.parent not in self._proxies:
                self.get_or_create_proxy(info.parent)
        return proxy

    def get_or_create_device(self, handle: int) -> Device:
        device = self._devices.get(handle)
        if device is not None:
            return device
        # Raises for retired handles and registers the ancestors for invalidate().
        info = self.get_or_create_proxy(handle)._live()
        if info.device_name is None:
            raise NodeLookupError(f"Node #{handle} ({info.type_name}) is not a device")
        device_class = DEVICE_TYPES.get(info.type_name, Device)
        device = device_class(self, info)
        self._devices[handle] = device
        logger.debug("Created %s surrogate '%s' for #%s", device_class.__name__, info.device_name, handle)
        return device

    def is_retired(self, handle: int) -> bool:
        return handle in self._retired

    def __contains__(self, handle: object) -> bool:
        return handle in self._proxies

    def __len__(self) -> int:
        return len(self._proxies)

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._proxies.values()))

    # --- Resolution entries -------------------------------------------------

    def lookup_entry(self, scope: int, key: Hashable) -> Optional[int]:
        if not self.config.caching:
            return None
        entry = self._entries.get((scope, key))
        if entry is None:
            return None
        if entry.generation != self.structure_generation or entry.handle in self._retired:
            del self._entries[(scope, key)]
            return None
        return entry.handle

    def store_entry(self, scope: int, key: Hashable, handle: int) -> None:
        if self.config.caching:
            self._entries[(scope, key)] = CacheEntry(scope, key, handle, self.structure_generation)

    # --- Invalidation -------------------------------------------------------

    def invalidate(self, handle: int) -> List[int]:
        """Retire handle and every proxied descendant; drop entries that mention them."""
        subtree = self._collect(handle)
        for member in subtree:
            proxy = self._proxies.pop(member, None)
            if proxy is not None:
                proxy._mark_stale()
            self._children.pop(member, None)
            device = self._devices.pop(member, None)
            if device is not None:
                device._mark_stale()
            self._retired.add(member)
        for siblings in self._children.values():
            siblings.discard(handle)
        dropped = [k for k, e in self._entries.items() if e.scope in subtree or e.handle in subtree]
        for k in dropped:
            del self._entries[k]
        self.structure_generation += 1
        logger.debug(
            "Invalidated #%s: %d proxies retired, %d entries dropped", handle, len(subtree), len(dropped)
        )
        return sorted(subtree)

    def note_structure_change(self) -> None:
        """Record an import so cached resolutions are re-verified."""
        self.structure_generation += 1

    def note_rename(self, handle: int, name: str) -> None:
        """Record a write to a node's name field, which device searches match on."""
        self.structure_generation += 1
        proxy = self._proxies.get(handle)
        if proxy is not None:
            proxy._info = self.describe(handle)
        device = self._devices.get(handle)
        if device is not None:
            device.name = name
        logger.debug("Renamed #%s to '%s'", handle, name)

    def advance_step(self) -> int:
        self.generation += 1
        return self.generation

    def _collect(self, handle: int) -> Set[int]:
        found = {handle}
        pending = [handle]
        while pending:
            for child in self._children.get(pending.pop(), ()):
                if child not in found:
                    found.add(child)
                    pending.append(child)
        return found


__all__ = ["ProxyCache", "CacheEntry"]
