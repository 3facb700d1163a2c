"""Exception hierarchy for netpresence."""


class NetPresenceError(Exception):
    """Base class for all netpresence errors."""


class SourceError(NetPresenceError):
    """Raised by snapshot sources."""


class SourceUnavailable(SourceError):
    """The external listing could not be invoked or read."""


class BusError(NetPresenceError):
    """Raised by the message bus."""


class ConnectFailed(BusError):
    """Could not connect to the broker."""


class SubscribeFailed(BusError):
    """Could not subscribe to a topic."""


class PublishFailed(BusError):
    """Could not publish a message."""

    def __init__(self, topic: str, reason: str):
        self.topic = topic
        self.reason = reason
        super().__init__(f"Failed to publish to {topic}: {reason}")
