"""Exception taxonomy for the proxy layer."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from low_level_interface.interface import EngineError


class ProxyError(Exception):
    """Base class for every error raised by the proxy layer."""


class NodeLookupError(ProxyError, LookupError):
    """A key could not be resolved to a node within the given scope."""


class NoSuchFieldError(NodeLookupError, AttributeError):
    """Neither a field nor a descendant matches the requested key."""


class StaleReferenceError(ProxyError):
    """The proxy's node was removed or replaced by a mutation made through this process."""


class ReadOnlyError(ProxyError):
    """The engine marks the targeted field as immutable."""


class DegenerateVectorError(ProxyError, ValueError):
    """A direction was requested from a zero-length vector."""


class ExpiredBufferError(ProxyError):
    """A buffer view was read after the step it was captured in."""


class ExternalInterfaceError(ProxyError):
    """Wraps any failure reported by the simulation interface."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


@contextmanager
def external_call(operation: str) -> Iterator[None]:
    """Translate EngineError raised inside the block into ExternalInterfaceError."""
    try:
        yield
    except EngineError as exc:
        raise ExternalInterfaceError(operation, str(exc)) from exc


__all__ = [
    "ProxyError",
    "NodeLookupError",
    "NoSuchFieldError",
    "StaleReferenceError",
    "ReadOnlyError",
    "DegenerateVectorError",
    "ExpiredBufferError",
    "ExternalInterfaceError",
    "external_call",
]
