"""Snapshot source base class."""

from abc import ABC, abstractmethod

from netpresence.types.presence import DeviceSet


class SnapshotSource(ABC):
    """
    Base class for address-table sources.

    A source reports the hardware addresses currently visible on the local
    network segment, plus the local host's own addresses used to annotate
    publications.
    """

    @abstractmethod
    async def capture(self) -> DeviceSet:
        """
        Read the neighbor table.

        Returns:
            Canonically sorted device identifiers

        Raises:
            SourceUnavailable: If the table cannot be read
        """
        pass

    @abstractmethod
    async def local_ip(self) -> str:
        """Get the local host's IP address."""
        pass

    @abstractmethod
    async def local_mac(self) -> str:
        """Get the local host's hardware address."""
        pass
