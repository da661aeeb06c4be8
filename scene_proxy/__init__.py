"""Object-oriented access layer over the narrow simulation interface."""

from .errors import (
    ProxyError,
    NodeLookupError,
    NoSuchFieldError,
    StaleReferenceError,
    ReadOnlyError,
    DegenerateVectorError,
    ExpiredBufferError,
    ExternalInterfaceError,
)
from .vectors import VectorValue, Vec2, Vec3, Color, Rotation
from .buffers import BufferView
from .schema import FIELD_SCHEMA, FieldSchema
from .resolver import Resolver, ByLabel, ByType, ByDevice
from .nodes import Node, Field
from .base import Device, DeviceReading
from .sensors import DistanceSensor, LightSensor, TouchSensor, GPS, Accelerometer, Camera, RangeFinder
from .compat import LegacyNameWarning, DeprecationAdvisor
from .cache import ProxyCache, CacheEntry

__all__ = [
    "ProxyError",
    "NodeLookupError",
    "NoSuchFieldError",
    "StaleReferenceError",
    "ReadOnlyError",
    "DegenerateVectorError",
    "ExpiredBufferError",
    "ExternalInterfaceError",
    "VectorValue",
    "Vec2",
    "Vec3",
    "Color",
    "Rotation",
    "BufferView",
    "FIELD_SCHEMA",
    "FieldSchema",
    "Resolver",
    "ByLabel",
    "ByType",
    "ByDevice",
    "Node",
    "Field",
    "Device",
    "DeviceReading",
    "DistanceSensor",
    "LightSensor",
    "TouchSensor",
    "GPS",
    "Accelerometer",
    "Camera",
    "RangeFinder",
    "LegacyNameWarning",
    "DeprecationAdvisor",
    "ProxyCache",
    "CacheEntry",
]
