"""Presence tracker: diffs successive neighbor table snapshots."""

import logging
from typing import Iterable, Optional

from netpresence.types.presence import (
    ChangeDirection,
    ChangeOutcome,
    DeviceSet,
    canonical_device_set,
)


logger = logging.getLogger(__name__)


class PresenceState:
    """Holds the current device set. Replaced wholesale, never edited in place."""

    def __init__(self, devices: DeviceSet = ()):
        self._devices: DeviceSet = devices

    @property
    def devices(self) -> DeviceSet:
        return self._devices

    def replace(self, devices: DeviceSet) -> None:
        self._devices = devices


class PresenceTracker:
    """
    Tracks which devices are on the network.

    Changes are classified by set size only: a shrinking set means a device
    left, anything else that differs is reported as a join. This includes
    same-size membership swaps, which cannot be told apart from a join.
    """

    def __init__(self, state: Optional[PresenceState] = None):
        self.state = state or PresenceState()

    @property
    def devices(self) -> DeviceSet:
        """Current device set."""
        return self.state.devices

    def observe(self, snapshot: Iterable[str]) -> ChangeOutcome:
        """
        Compare a new snapshot against the current state.

        Args:
            snapshot: Device identifiers in any order

        Returns:
            ChangeOutcome describing whether and how membership changed
        """
        new_devices = canonical_device_set(snapshot)
        old_devices = self.state.devices

        if new_devices == old_devices:
            return ChangeOutcome.unchanged(old_devices)

        if len(old_devices) > len(new_devices):
            direction = ChangeDirection.LEFT
        else:
            direction = ChangeDirection.JOINED

        self.state.replace(new_devices)

        logger.info(
            f"Device list changed ({direction.value}): "
            f"{len(old_devices)} -> {len(new_devices)} devices"
        )

        return ChangeOutcome.change(direction, new_devices)
