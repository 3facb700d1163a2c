"""Address-table snapshot sources."""

from .base import SnapshotSource
from .command import (
    BsdSnapshotSource,
    CommandSnapshotSource,
    LinuxSnapshotSource,
    create_snapshot_source,
)

__all__ = [
    "SnapshotSource",
    "CommandSnapshotSource",
    "LinuxSnapshotSource",
    "BsdSnapshotSource",
    "create_snapshot_source",
]
