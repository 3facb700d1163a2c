"""Core components for netpresence."""

from .mqtt_bus import MQTTEventBus
from .config import ConfigManager
from .errors import (
    BusError,
    ConnectFailed,
    NetPresenceError,
    PublishFailed,
    SourceError,
    SourceUnavailable,
    SubscribeFailed,
)

__all__ = [
    "MQTTEventBus",
    "ConfigManager",
    "NetPresenceError",
    "SourceError",
    "SourceUnavailable",
    "BusError",
    "ConnectFailed",
    "SubscribeFailed",
    "PublishFailed",
]
