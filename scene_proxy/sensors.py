"""Device surrogates for the sensing node types the engine reports."""
from __future__ import annotations

import math
from typing import Any, Dict, Optional, Tuple, Type

from low_level_interface.interface import READ_BOOL, READ_IMAGE, READ_VECTOR

from .base import Device
from .vectors import Vec3


class DistanceSensor(Device):
    """Scalar range reading; compares and does arithmetic like a float."""

    def within(self, threshold: float) -> bool:
        reading = self.value
        return reading is not None and reading <= threshold


class LightSensor(Device):
    pass


class TouchSensor(Device):
    reading_kind = READ_BOOL

    @property
    def pressed(self) -> bool:
        return bool(self.value)


class GPS(Device):
    """Position of the device in world coordinates, as a Vec3."""

    reading_kind = READ_VECTOR

    @property
    def position(self) -> Optional[Vec3]:
        return self.value


class Accelerometer(Device):
    reading_kind = READ_VECTOR

    @property
    def magnitude(self) -> float:
        reading = self.value
        return math.nan if reading is None else reading.magnitude


class Camera(Device):
    """Color image, exposed as a uint8 BufferView of shape (height, width, 4).

    The view is only readable during the step it was captured in. Call
    ``value.copy()`` to keep a frame.
    """

    reading_kind = READ_IMAGE

    @property
    def width(self) -> int:
        return self.node.field("width").value

    @property
    def height(self) -> int:
        return self.node.field("height").value

    @property
    def shape(self) -> Tuple[int, ...]:
        return (self.height, self.width, 4)


class RangeFinder(Camera):
    """Depth image, a float32 BufferView of shape (height, width)."""

    @property
    def shape(self) -> Tuple[int, ...]:
        return (self.height, self.width)

    @property
    def max_range(self) -> Any:
        return self.node.field("maxRange").value


DEVICE_TYPES: Dict[str, Type[Device]] = {
    "DistanceSensor": DistanceSensor,
    "LightSensor": LightSensor,
    "TouchSensor": TouchSensor,
    "GPS": GPS,
    "Accelerometer": Accelerometer,
    "Camera": Camera,
    "RangeFinder": RangeFinder,
}


__all__ = [
    "DistanceSensor",
    "LightSensor",
    "TouchSensor",
    "GPS",
    "Accelerometer",
    "Camera",
    "RangeFinder",
    "DEVICE_TYPES",
]
