"""Presence types and enumerations."""

from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


DeviceSet = Tuple[str, ...]


def canonical_device_set(identifiers: Iterable[str]) -> DeviceSet:
    """
    Build a DeviceSet from raw identifiers.

    Identifiers are trimmed, empty ones dropped, duplicates removed and the
    result sorted lexicographically.
    """
    cleaned = {identifier.strip() for identifier in identifiers}
    cleaned.discard("")
    return tuple(sorted(cleaned))


class ChangeDirection(str, Enum):
    """Direction of a detected membership change."""

    JOINED = "joined"
    LEFT = "left"


class AlertKind(str, Enum):
    """Alert kinds published on the alert topic."""

    JOINED = "joined"
    LEFT = "left"
    NEW_DEVICE_ANNOUNCED = "new_device_announced"

    @property
    def message(self) -> str:
        return ALERT_MESSAGES[self]

    @classmethod
    def for_direction(cls, direction: ChangeDirection) -> "AlertKind":
        return cls.LEFT if direction == ChangeDirection.LEFT else cls.JOINED


DEVICE_CONNECTED_MESSAGE = "New device connected to the network"
DEVICE_DISCONNECTED_MESSAGE = "Device disconnected from the network"

ALERT_MESSAGES = {
    AlertKind.JOINED: DEVICE_CONNECTED_MESSAGE,
    AlertKind.LEFT: DEVICE_DISCONNECTED_MESSAGE,
    AlertKind.NEW_DEVICE_ANNOUNCED: DEVICE_CONNECTED_MESSAGE,
}


class ChangeOutcome(BaseModel):
    """Result of observing one snapshot."""

    changed: bool
    direction: Optional[ChangeDirection] = None
    devices: DeviceSet = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def unchanged(cls, devices: DeviceSet) -> "ChangeOutcome":
        return cls(changed=False, devices=devices)

    @classmethod
    def change(cls, direction: ChangeDirection, devices: DeviceSet) -> "ChangeOutcome":
        return cls(changed=True, direction=direction, devices=devices)


class DevicePublication(BaseModel):
    """Snapshot published on the device topic whenever the device list changes."""

    ip_address: str = ""
    mac_address: str = ""
    devices: DeviceSet = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)

    @field_validator("devices", mode="before")
    @classmethod
    def _canonicalize(cls, value: Any) -> DeviceSet:
        return canonical_device_set(value)

    def to_payload(self) -> Dict[str, Any]:
        """Wire payload for the device topic."""
        return {
            "ip_address": self.ip_address,
            "mac_address": self.mac_address,
            "devices": list(self.devices),
        }
