"""Device presence detection and change notification."""

from .tracker import PresenceState, PresenceTracker
from .notifier import Notifier
from .monitor import PresenceMonitor

__all__ = ["PresenceState", "PresenceTracker", "Notifier", "PresenceMonitor"]
