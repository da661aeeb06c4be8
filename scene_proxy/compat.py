"""Legacy camelCase names mapped onto the current API, with one advisory per call site."""
from __future__ import annotations

from dataclasses import dataclass
import inspect
import logging
from types import FrameType
from typing import Any, Callable, Dict, FrozenSet, Optional, Set, Tuple
import warnings

from .resolver import ByLabel

logger = logging.getLogger(__name__)


class LegacyNameWarning(FutureWarning):
    """Emitted when code calls a legacy name that has a current replacement."""


class DeprecationAdvisor:
    """Emits a LegacyNameWarning the first time each call site uses a legacy name.

    A call site is the (legacy name, file, line) of the code that invoked
    the legacy shim. Repeated calls from the same line stay silent.
    """

    def __init__(self, config) -> None:
        self.config = config
        self._seen: Set[Tuple[str, str, int]] = set()

    @property
    def seen(self) -> FrozenSet[Tuple[str, str, int]]:
        return frozenset(self._seen)

    def advise(self, old: str, new: str, *, caller: Optional[FrameType] = None) -> bool:
        """Warn about ``old`` unless this call site already has. Returns True when warned.

        ``caller`` is the frame of the code that used the legacy name; it
        defaults to the frame calling this method.
        """
        if not self.config.deprecation_advisories:
            return False
        if caller is None:
            caller = inspect.currentframe().f_back
        filename = caller.f_code.co_filename
        site = (old, filename, caller.f_lineno)
        if site in self._seen:
            return False
        self._seen.add(site)
        logger.debug("Legacy name %s used at %s:%s", old, filename, caller.f_lineno)
        warnings.warn_explicit(
            f"{old} is a legacy name; use {new} instead",
            LegacyNameWarning,
            filename,
            caller.f_lineno,
            module=caller.f_globals.get("__name__"),
        )
        return True

    def reset(self) -> None:
        self._seen.clear()


@dataclass(frozen=True)
class LegacyAlias:
    replacement: str
    call: Callable[..., Any]


def _legacy_insert(field, index: int, value: Any) -> Any:
    # Legacy negative indices count from past the end: -1 appends.
    if index < 0:
        index = len(field) + index + 1
    return field.insert(index, value)


def _legacy_setitem(field, index: int, value: Any) -> None:
    field[index] = value


def _legacy_delitem(field, index: int) -> None:
    del field[index]


def _legacy_enable(device, period: Optional[float] = None) -> None:
    device.sampling = True if period is None else period


_KIND_SUFFIXES = ("Bool", "Int32", "Float", "String", "Vec2f", "Vec3f", "Rotation", "Color")


def _field_aliases() -> Dict[str, LegacyAlias]:
    table = {
        "getName": LegacyAlias("Field.name", lambda f: f.name),
        "getTypeName": LegacyAlias("Field.kind", lambda f: f.kind),
        "getCount": LegacyAlias("len(field)", len),
        "getSFNode": LegacyAlias("Field.value", lambda f: f.value),
        "getMFNode": LegacyAlias("field[index]", lambda f, index: f[index]),
        "importSFNodeFromString": LegacyAlias("Field.value = spec", lambda f, spec: f.set(spec)),
        "importMFNodeFromString": LegacyAlias("Field.insert(index, spec)", _legacy_insert),
        "removeSF": LegacyAlias("Field.value = None", lambda f: f.set(None)),
        "removeMF": LegacyAlias("del field[index]", _legacy_delitem),
    }
    for suffix in _KIND_SUFFIXES:
        table[f"getSF{suffix}"] = LegacyAlias("Field.value", lambda f: f.value)
        table[f"setSF{suffix}"] = LegacyAlias("Field.value = value", lambda f, value: f.set(value))
        table[f"getMF{suffix}"] = LegacyAlias("field[index]", lambda f, index: f[index])
        table[f"setMF{suffix}"] = LegacyAlias("field[index] = value", _legacy_setitem)
        table[f"insertMF{suffix}"] = LegacyAlias("Field.insert(index, value)", _legacy_insert)
    return table


LEGACY_ALIASES: Dict[str, Dict[str, LegacyAlias]] = {
    "Supervisor": {
        "getRoot": LegacyAlias("Supervisor.root", lambda s: s.root),
        "getFromDef": LegacyAlias("Supervisor.find(ByLabel(label))", lambda s, label: s.find(ByLabel(label))),
        "getFromId": LegacyAlias("Supervisor.find(handle)", lambda s, handle: s.find(handle)),
        "getDevice": LegacyAlias("Supervisor.device(name)", lambda s, name: s.device(name)),
        "getBasicTimeStep": LegacyAlias("Supervisor.basic_time_step", lambda s: s.basic_time_step),
        "simulationSaveWorld": LegacyAlias("Supervisor.save_world(path)", lambda s, path=None: s.save_world(path)),
    },
    "Node": {
        "getField": LegacyAlias("Node.field(name)", lambda n, name: n.field(name)),
        "getFieldByIndex": LegacyAlias("Node.field(name)", lambda n, index: n.field(n.field_names[index])),
        "getNumberOfFields": LegacyAlias("len(Node.field_names)", lambda n: len(n.field_names)),
        "getTypeName": LegacyAlias("Node.type_name", lambda n: n.type_name),
        "getDef": LegacyAlias("Node.label", lambda n: n.label),
        "getId": LegacyAlias("Node.handle", lambda n: n.handle),
        "getParentNode": LegacyAlias("Node.parent", lambda n: n.parent),
    },
    "Field": _field_aliases(),
    "Device": {
        "enable": LegacyAlias("Device.sampling = period", _legacy_enable),
        "disable": LegacyAlias("Device.sampling = None", lambda d: setattr(d, "sampling", None)),
        "getSamplingPeriod": LegacyAlias("Device.sampling", lambda d: d.sampling),
        "getName": LegacyAlias("Device.name", lambda d: d.name),
        "getValue": LegacyAlias("Device.value", lambda d: d.value),
        "getValues": LegacyAlias("Device.value", lambda d: d.value),
        "getImage": LegacyAlias("Device.value", lambda d: d.value),
        "getRangeImage": LegacyAlias("Device.value", lambda d: d.value),
    },
}


def legacy_attribute(obj: Any, name: str, cache) -> Optional[Callable[..., Any]]:
    """Bound shim for a legacy name on obj, or None when there is none (or compat is off)."""
    if not cache.config.compat_enabled:
        return None
    for klass in type(obj).__mro__:
        alias = LEGACY_ALIASES.get(klass.__name__, {}).get(name)
        if alias is not None:
            break
    else:
        return None
    advisor = cache.advisor
    qualified = f"{type(obj).__name__}.{name}"

    def shim(*args: Any, **kwargs: Any) -> Any:
        advisor.advise(qualified, alias.replacement, caller=inspect.currentframe().f_back)
        return alias.call(obj, *args, **kwargs)

    shim.__name__ = name
    shim.__doc__ = f"Legacy alias for {alias.replacement}."
    return shim


__all__ = ["LegacyNameWarning", "DeprecationAdvisor", "LegacyAlias", "LEGACY_ALIASES", "legacy_attribute"]
