"""Device surrogates: objects that stand in for a device's latest reading."""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
import operator
from typing import Any, Callable, Dict, Iterator, Optional, TYPE_CHECKING

from low_level_interface.interface import NodeInfo, READ_SCALAR, TaggedValue

from .compat import legacy_attribute
from .errors import StaleReferenceError, external_call
from .schema import reading_to_python

if TYPE_CHECKING:  # pragma: no cover
    from .cache import ProxyCache
    from .nodes import Node

logger = logging.getLogger(__name__)


@dataclass
class DeviceReading:
    name: str
    value: Any
    generation: int
    metadata: Dict[str, Any] = field(default_factory=dict)


def _forward(op: Callable[[Any, Any], Any]) -> Callable[["Device", Any], Any]:
    def method(self: "Device", other: Any) -> Any:
        return op(self.value, other)

    method.__name__ = f"__{op.__name__.strip('_')}__"
    return method


def _reflect(op: Callable[[Any, Any], Any]) -> Callable[["Device", Any], Any]:
    def method(self: "Device", other: Any) -> Any:
        return op(other, self.value)

    method.__name__ = f"__r{op.__name__.strip('_')}__"
    return method


class Device:
    """Named handle on a sensing device.

    The surrogate behaves like its current reading: comparisons, arithmetic,
    truthiness, iteration and numeric conversion all act on ``value``. The
    first read enables sampling at the basic time step unless sampling was
    configured explicitly; ``sampling = None`` disables it and ``value``
    then returns None. Readings are fetched at most once per step.

    Hashing is by identity, so surrogates can key dicts even though ``==``
    compares readings.
    """

    reading_kind = READ_SCALAR

    def __init__(self, cache: "ProxyCache", info: NodeInfo) -> None:
        self._cache = cache
        self.handle = info.handle
        self.name = info.device_name
        self.node_type = info.type_name
        self._period: Optional[float] = None
        self._enabled_once = False
        self._explicit = False
        self._warned_disabled = False
        self._last: Optional[DeviceReading] = None
        self._stale = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}('{self.name}')"

    def __getattr__(self, name: str) -> Any:
        if not name.startswith("_"):
            shim = legacy_attribute(self, name, self._cache)
            if shim is not None:
                return shim
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    @property
    def is_stale(self) -> bool:
        return self._stale

    def _mark_stale(self) -> None:
        self._stale = True

    def _check_live(self) -> None:
        if self._stale:
            raise StaleReferenceError(f"Device '{self.name}' (#{self.handle}) was removed or replaced")

    @property
    def node(self) -> "Node":
        self._check_live()
        return self._cache.get_or_create_proxy(self.handle)

    # --- Sampling -----------------------------------------------------------

    @property
    def sampling(self) -> Optional[float]:
        """Sampling period in milliseconds, or None while disabled."""
        self._check_live()
        return self._period

    @sampling.setter
    def sampling(self, period: Any) -> None:
        self._check_live()
        if period is True:
            period = self._cache.interface.basic_time_step
        elif period is False:
            period = None
        if period is not None:
            period = float(period)
            if period <= 0:
                raise ValueError(f"Sampling period must be positive, got {period}")
        with external_call("enable_sampling"):
            self._cache.interface.enable_sampling(self.handle, period)
        self._period = period
        self._explicit = True
        self._enabled_once = True
        self._warned_disabled = False
        self._last = None
        logger.debug("Sampling for '%s' set to %s", self.name, period)

    @property
    def sampling_explicit(self) -> bool:
        """True once sampling was configured by the caller rather than on first read."""
        return self._explicit

    def _ensure_sampling(self) -> None:
        if self._enabled_once:
            return
        period = float(self._cache.interface.basic_time_step)
        with external_call("enable_sampling"):
            self._cache.interface.enable_sampling(self.handle, period)
        self._period = period
        self._enabled_once = True
        logger.debug("Enabled '%s' at the basic time step (%s ms) on first read", self.name, period)

    # --- Readings -----------------------------------------------------------

    @property
    def value(self) -> Any:
        self._check_live()
        self._ensure_sampling()
        if self._period is None:
            if not self._warned_disabled:
                logger.warning("Device '%s' was read while sampling is disabled", self.name)
                self._warned_disabled = True
            return None
        generation = self._cache.generation
        if self._last is not None and self._last.generation == generation:
            return self._last.value
        with external_call("read_device"):
            tagged = self._cache.interface.read_device(self.handle)
        self._last = DeviceReading(self.name, self._convert(tagged), generation, {"kind": tagged.kind})
        return self._last.value

    @property
    def last_reading(self) -> Optional[DeviceReading]:
        return self._last

    def _convert(self, tagged: TaggedValue) -> Any:
        return reading_to_python(tagged, self._cache, name=self.name)

    # --- Surrogate behaviour ------------------------------------------------

    __eq__ = _forward(operator.eq)
    __ne__ = _forward(operator.ne)
    __lt__ = _forward(operator.lt)
    __le__ = _forward(operator.le)
    __gt__ = _forward(operator.gt)
    __ge__ = _forward(operator.ge)
    __add__ = _forward(operator.add)
    __sub__ = _forward(operator.sub)
    __mul__ = _forward(operator.mul)
    __truediv__ = _forward(operator.truediv)
    __radd__ = _reflect(operator.add)
    __rsub__ = _reflect(operator.sub)
    __rmul__ = _reflect(operator.mul)
    __rtruediv__ = _reflect(operator.truediv)

    __hash__ = object.__hash__

    def __neg__(self) -> Any:
        return -self.value

    def __abs__(self) -> Any:
        return abs(self.value)

    def __bool__(self) -> bool:
        return bool(self.value)

    def __float__(self) -> float:
        return float(self.value)

    def __int__(self) -> int:
        return int(self.value)

    def __len__(self) -> int:
        return len(self.value)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.value)

    def __getitem__(self, key: Any) -> Any:
        return self.value[key]


__all__ = ["Device", "DeviceReading"]
