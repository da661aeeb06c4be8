"""Fixed-size numeric value types with named components and arithmetic."""
from __future__ import annotations

import math
from typing import Any, Iterable, Tuple, TypeVar

from .errors import DegenerateVectorError

V = TypeVar("V", bound="VectorValue")


def _component(index: int, name: str) -> property:
    def getter(self: "VectorValue") -> float:
        return tuple.__getitem__(self, index)

    getter.__name__ = name
    return property(getter, doc=f"Component {index} ({name}).")


class VectorValue(tuple):
    """Immutable tuple of floats supporting component-wise vector arithmetic.

    Subclasses declare ``components`` to fix their size and name each slot;
    the base class accepts any length. Values compare equal to plain tuples
    with the same components, so ``Vec3(1, 2, 3) == (1, 2, 3)``.
    """

    components: Tuple[str, ...] = ()

    def __new__(cls, *args: Any) -> "VectorValue":
        if len(args) == 1 and isinstance(args[0], Iterable) and not isinstance(args[0], str):
            values = tuple(float(v) for v in args[0])
        else:
            values = tuple(float(v) for v in args)
        if cls.components and len(values) != len(cls.components):
            raise ValueError(f"{cls.__name__} needs {len(cls.components)} components, got {len(values)}")
        return super().__new__(cls, values)

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        for index, name in enumerate(cls.__dict__.get("components", ())):
            setattr(cls, name, _component(index, name))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({', '.join(repr(v) for v in self)})"

    def _other(self, other: Any) -> Tuple[float, ...] | None:
        if isinstance(other, (str, bytes)) or not isinstance(other, Iterable):
            return None
        values = tuple(other)
        if len(values) != len(self):
            return None
        return values

    # --- Arithmetic ---------------------------------------------------------

    def __add__(self: V, other: Any) -> V:
        values = self._other(other)
        if values is None:
            return NotImplemented
        return type(self)(a + b for a, b in zip(self, values))

    def __radd__(self: V, other: Any) -> V:
        return self.__add__(other)

    def __sub__(self: V, other: Any) -> V:
        values = self._other(other)
        if values is None:
            return NotImplemented
        return type(self)(a - b for a, b in zip(self, values))

    def __rsub__(self: V, other: Any) -> V:
        values = self._other(other)
        if values is None:
            return NotImplemented
        return type(self)(b - a for a, b in zip(self, values))

    def __mul__(self: V, scalar: Any) -> V:
        if isinstance(scalar, bool) or not isinstance(scalar, (int, float)):
            return NotImplemented
        return type(self)(a * scalar for a in self)

    __rmul__ = __mul__

    def __truediv__(self: V, scalar: Any) -> V:
        if isinstance(scalar, bool) or not isinstance(scalar, (int, float)):
            return NotImplemented
        return type(self)(a / scalar for a in self)

    def __neg__(self: V) -> V:
        return type(self)(-a for a in self)

    def __pos__(self: V) -> V:
        return self

    # --- Geometry -----------------------------------------------------------

    def dot(self, other: Iterable[float]) -> float:
        values = self._other(other)
        if values is None:
            raise ValueError(f"dot() needs {len(self)} components, got {other!r}")
        return sum(a * b for a, b in zip(self, values))

    @property
    def magnitude(self) -> float:
        return math.sqrt(sum(a * a for a in self))

    def unit_vector(self: V) -> V:
        length = self.magnitude
        if length == 0.0:
            raise DegenerateVectorError(f"{self!r} has zero magnitude and no direction")
        return self / length

    def distance_to(self, other: Iterable[float]) -> float:
        values = self._other(other)
        if values is None:
            raise ValueError(f"distance_to() needs {len(self)} components, got {other!r}")
        return math.sqrt(sum((a - b) ** 2 for a, b in zip(self, values)))

    def isclose(self, other: Iterable[float], *, rel_tol: float = 1e-9, abs_tol: float = 1e-9) -> bool:
        values = self._other(other)
        if values is None:
            return False
        return all(math.isclose(a, b, rel_tol=rel_tol, abs_tol=abs_tol) for a, b in zip(self, values))


class Vec2(VectorValue):
    components = ("x", "y")


class Vec3(VectorValue):
    components = ("x", "y", "z")

    def cross(self, other: Iterable[float]) -> "Vec3":
        ox, oy, oz = Vec3(other)
        x, y, z = self
        return Vec3(y * oz - z * oy, z * ox - x * oz, x * oy - y * ox)


class Color(VectorValue):
    """RGB color with components in [0, 1]."""

    components = ("r", "g", "b")

    def clamped(self) -> "Color":
        return Color(min(1.0, max(0.0, c)) for c in self)


class Rotation(VectorValue):
    """Axis-angle rotation: unit axis (x, y, z) plus angle in radians."""

    components = ("x", "y", "z", "angle")

    @property
    def axis(self) -> Vec3:
        return Vec3(self[:3])


__all__ = ["VectorValue", "Vec2", "Vec3", "Color", "Rotation"]
