"""Notifier: publishes device lists and alerts on the event bus."""

import asyncio
import logging
from typing import Optional, Set

from netpresence.core.errors import PublishFailed
from netpresence.core.mqtt_bus import MQTTEventBus, Payload
from netpresence.types.presence import AlertKind, ChangeOutcome, DevicePublication


logger = logging.getLogger(__name__)


class Notifier:
    """
    Publishes presence changes.

    Device list publications are fatal on failure; alerts are best effort.
    Inbound announcements on the new_device topic are relayed as alerts.
    """

    def __init__(self, event_bus: MQTTEventBus):
        self.event_bus = event_bus
        self._pending: Set[asyncio.Task] = set()

    async def start(self) -> None:
        """
        Subscribe to new device announcements.

        Raises:
            SubscribeFailed: If the subscription is rejected
        """
        await self.event_bus.subscribe_new_device(self._handle_new_device)

    async def stop(self) -> None:
        """Wait for any in-flight relayed alerts."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def publish_state(self, publication: DevicePublication) -> None:
        """
        Publish the full device list.

        Raises:
            PublishFailed: If the message could not be published
        """
        await self.event_bus.publish_device_state(publication.to_payload())
        logger.info(f"Published {len(publication.devices)} devices")

    async def publish_alert(self, kind: AlertKind) -> bool:
        """
        Publish an alert message.

        Returns:
            True if published, False if publishing failed
        """
        try:
            await self.event_bus.publish_alert(kind.message)
        except PublishFailed as e:
            logger.warning(f"Failed to publish {kind.value} alert: {e}")
            return False

        logger.debug(f"Published {kind.value} alert")
        return True

    async def notify(self, outcome: ChangeOutcome, publication: DevicePublication) -> None:
        """Publish the device list, then the alert matching the change."""
        if not outcome.changed:
            return

        await self.publish_state(publication)
        await self.publish_alert(AlertKind.for_direction(outcome.direction))

    def _handle_new_device(self, topic: str, payload: Payload) -> Optional[asyncio.Task]:
        """Relay an announcement without blocking the bus dispatcher."""
        logger.info(f"New device announced on {topic}: {str(payload)[:100]}")

        task = asyncio.create_task(self.publish_alert(AlertKind.NEW_DEVICE_ANNOUNCED))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task
