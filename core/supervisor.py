"""Supervisor facade: wires interface, proxy cache and devices, and owns the step loop."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Hashable, Iterator, List, Optional, Union

from low_level_interface.interface import SimulationInterface

from scene_proxy.base import Device
from scene_proxy.cache import ProxyCache
from scene_proxy.compat import DeprecationAdvisor, legacy_attribute
from scene_proxy.errors import external_call
from scene_proxy.nodes import Node
from scene_proxy.resolver import ByDevice

from .config import ProxyConfig

logger = logging.getLogger(__name__)

PACKAGE_LOGGERS = ("low_level_interface", "scene_proxy", "core")


def apply_log_level(level: str) -> None:
    """Set the level on the package loggers; handlers are left to the application."""
    numeric = logging.getLevelName(level.upper())
    for name in PACKAGE_LOGGERS:
        logging.getLogger(name).setLevel(numeric)


class Supervisor:
    """Entry point for controller code.

    A controller typically looks like::

        supervisor = Supervisor(world)
        box = supervisor.get("BOX")
        for _ in supervisor.steps():
            if supervisor.device("ds_front") < 0.2:
                box.translation += (0.0, 0.01, 0.0)
    """

    def __init__(
        self,
        interface: SimulationInterface,
        config: Optional[ProxyConfig] = None,
        *,
        advisor: Optional[DeprecationAdvisor] = None,
    ) -> None:
        self.interface = interface
        self.config = config or ProxyConfig()
        apply_log_level(self.config.log_level)
        self.advisor = advisor or DeprecationAdvisor(self.config)
        self.cache = ProxyCache(interface, self.config, self.advisor)
        self.resolver = self.cache.resolver
        self.step_count = 0
        self.trace_enabled = False
        self.trace_callback: Optional[Callable[[Dict[str, object]], None]] = None
        self.trace_log: List[Dict[str, object]] = []
        logger.info(
            "Supervisor started (basic time step %s ms, caching=%s, compat=%s)",
            interface.basic_time_step,
            self.config.caching,
            self.config.compat_enabled,
        )

    def __repr__(self) -> str:
        return f"Supervisor(step={self.step_count}, proxies={len(self.cache)})"

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or "cache" not in self.__dict__:
            raise AttributeError(name)
        shim = legacy_attribute(self, name, self.cache)
        if shim is None:
            raise AttributeError(f"'Supervisor' object has no attribute '{name}'")
        return shim

    # --- Navigation ---------------------------------------------------------

    @property
    def root(self) -> Node:
        return self.cache.get_or_create_proxy(self.cache.root_handle)

    @property
    def basic_time_step(self) -> float:
        return self.interface.basic_time_step

    @property
    def generation(self) -> int:
        return self.cache.generation

    def get(self, key: Hashable, scope: Union[Node, int, None] = None) -> Node:
        """Resolve key (label, type, device name, id or dotted path) to a Node."""
        handle = self.resolver.resolve(key, _scope_handle(scope))
        return self.cache.get_or_create_proxy(handle)

    def find(self, key: Hashable, scope: Union[Node, int, None] = None) -> Optional[Node]:
        handle = self.resolver.find(key, _scope_handle(scope))
        return None if handle is None else self.cache.get_or_create_proxy(handle)

    def node(self, handle: int) -> Node:
        return self.get(handle)

    def device(self, name: Union[str, Node]) -> Device:
        if isinstance(name, Node):
            return name.device
        return self.cache.get_or_create_device(self.resolver.resolve(ByDevice(name)))

    # --- Stepping -----------------------------------------------------------

    def step(self, timeout: Optional[float] = None) -> bool:
        """Advance the simulation one step. Returns False once the engine is terminating."""
        with external_call("step"):
            running = self.interface.step(timeout)
        self.cache.advance_step()
        self.step_count += 1
        if self.trace_enabled:
            self._record_trace(running)
        if not running:
            logger.info("Simulation ended after %d steps", self.step_count)
        return running

    def steps(self, limit: Optional[int] = None, timeout: Optional[float] = None) -> Iterator[int]:
        """Step until the engine stops (or limit steps pass), yielding the step count each time."""
        taken = 0
        while limit is None or taken < limit:
            if not self.step(timeout):
                return
            taken += 1
            yield self.step_count

    def run(self, controller: Callable[["Supervisor"], None], *, max_steps: Optional[int] = None) -> int:
        """Call controller(self) after every step; returns the number of steps run."""
        taken = 0
        for _ in self.steps(max_steps):
            controller(self)
            taken += 1
        return taken

    def save_world(self, path: Union[str, Path, None] = None) -> bool:
        with external_call("save_world"):
            saved = self.interface.save_world(None if path is None else str(path))
        logger.info("World saved to %s", path if path is not None else "its default location")
        return saved

    # --- Trace --------------------------------------------------------------

    def enable_trace_logging(
        self,
        enabled: bool = True,
        callback: Optional[Callable[[Dict[str, object]], None]] = None,
        *,
        clear_existing: bool = True,
    ) -> None:
        """Toggle per-step trace capture; optional callback for streaming."""
        self.trace_enabled = enabled
        self.trace_callback = callback
        if clear_existing:
            self.trace_log.clear()

    def export_trace_log(self) -> List[Dict[str, object]]:
        return list(self.trace_log)

    def save_trace_log(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(self.trace_log, f, indent=2)

    def _record_trace(self, running: bool) -> None:
        entry: Dict[str, object] = {
            "step": self.step_count,
            "generation": self.cache.generation,
            "structure_generation": self.cache.structure_generation,
            "proxies": len(self.cache),
            "running": running,
        }
        self.trace_log.append(entry)
        if self.trace_callback is not None:
            self.trace_callback(entry)


def _scope_handle(scope: Union[Node, int, None]) -> Optional[int]:
    if isinstance(scope, Node):
        return scope.handle
    return scope


__all__ = ["Supervisor", "apply_log_level", "PACKAGE_LOGGERS"]
