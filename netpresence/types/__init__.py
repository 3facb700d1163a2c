"""Type definitions for netpresence."""

from .presence import (
    AlertKind,
    ChangeDirection,
    ChangeOutcome,
    DevicePublication,
    DeviceSet,
    canonical_device_set,
)

__all__ = [
    "AlertKind",
    "ChangeDirection",
    "ChangeOutcome",
    "DevicePublication",
    "DeviceSet",
    "canonical_device_set",
]
