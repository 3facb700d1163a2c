"""Shared fixtures for netpresence tests."""

from unittest.mock import AsyncMock

import pytest

from netpresence.core.mqtt_bus import MQTTEventBus
from netpresence.presence import Notifier, PresenceTracker


@pytest.fixture
def bus() -> MQTTEventBus:
    """Event bus with a mocked aiomqtt client."""
    event_bus = MQTTEventBus(broker="broker.test", topic_prefix="NETWORK")
    event_bus.client = AsyncMock()
    event_bus._running = True
    return event_bus


@pytest.fixture
def notifier(bus: MQTTEventBus) -> Notifier:
    return Notifier(bus)


@pytest.fixture
def tracker() -> PresenceTracker:
    return PresenceTracker()
