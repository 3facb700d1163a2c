"""Presence monitor: the timer-driven capture, diff and publish loop."""

import asyncio
import logging
from typing import Optional

from netpresence.core.errors import PublishFailed, SourceUnavailable
from netpresence.source.base import SnapshotSource
from netpresence.types.presence import ChangeOutcome, DevicePublication

from .notifier import Notifier
from .tracker import PresenceTracker


logger = logging.getLogger(__name__)


class PresenceMonitor:
    """
    Runs the presence loop.

    Each tick captures the neighbor table, feeds it to the tracker and, when
    the device list changed, publishes the new list followed by an alert.
    A failed capture skips the tick. A failed device list publication stops
    the loop.
    """

    def __init__(
        self,
        source: SnapshotSource,
        tracker: PresenceTracker,
        notifier: Notifier,
        poll_interval: float = 5.0,
    ):
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")

        self.source = source
        self.tracker = tracker
        self.notifier = notifier
        self.poll_interval = poll_interval

        self._stop_event = asyncio.Event()
        self.ticks = 0

    async def tick(self) -> Optional[ChangeOutcome]:
        """
        Run one capture, observe and publish cycle.

        Returns:
            The change outcome, or None if the capture failed

        Raises:
            PublishFailed: If the device list could not be published
        """
        self.ticks += 1

        try:
            snapshot = await self.source.capture()
        except SourceUnavailable as e:
            logger.warning(f"Skipping scan: {e}")
            return None

        outcome = self.tracker.observe(snapshot)
        if not outcome.changed:
            return outcome

        publication = await self._build_publication(outcome)
        await self.notifier.notify(outcome, publication)
        return outcome

    async def _build_publication(self, outcome: ChangeOutcome) -> DevicePublication:
        """Annotate the new device list with the local host's addresses."""
        try:
            ip_address = await self.source.local_ip()
        except SourceUnavailable as e:
            logger.warning(f"Could not determine local IP address: {e}")
            ip_address = ""

        try:
            mac_address = await self.source.local_mac()
        except SourceUnavailable as e:
            logger.warning(f"Could not determine local MAC address: {e}")
            mac_address = ""

        return DevicePublication(
            ip_address=ip_address,
            mac_address=mac_address,
            devices=outcome.devices,
        )

    async def run(self) -> None:
        """
        Tick every poll_interval seconds until stop() is called.

        Raises:
            PublishFailed: If a device list publication fails
        """
        logger.info(f"Presence monitor started, scanning every {self.poll_interval}s")

        try:
            while not self._stop_event.is_set():
                await self.tick()

                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    pass

        except PublishFailed as e:
            logger.error(f"Stopping presence monitor: {e}")
            raise

        finally:
            logger.info(f"Presence monitor stopped after {self.ticks} scans")

    def stop(self) -> None:
        """Request the loop to stop after the current tick."""
        self._stop_event.set()
