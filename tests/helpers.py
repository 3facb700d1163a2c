"""Test doubles and assertions shared across test modules."""

import json
from typing import Iterable, List, Optional, Union

from netpresence.core.errors import SourceUnavailable
from netpresence.core.mqtt_bus import MQTTEventBus
from netpresence.presence import Notifier, PresenceMonitor, PresenceTracker
from netpresence.source.base import SnapshotSource
from netpresence.types.presence import DeviceSet


class ScriptedSource(SnapshotSource):
    """Snapshot source that replays a scripted sequence of snapshots or errors."""

    def __init__(
        self,
        script: Iterable[Union[Iterable[str], Exception]],
        ip: str = "192.168.1.10",
        mac: str = "dc:a6:32:00:00:01",
    ):
        self.script = list(script)
        self.ip = ip
        self.mac = mac
        self.captures = 0

    async def capture(self) -> DeviceSet:
        step = self.script[min(self.captures, len(self.script) - 1)]
        self.captures += 1
        if isinstance(step, Exception):
            raise step
        # Input order is kept as scripted
        return tuple(step)

    async def local_ip(self) -> str:
        if not self.ip:
            raise SourceUnavailable("no ip")
        return self.ip

    async def local_mac(self) -> str:
        if not self.mac:
            raise SourceUnavailable("no mac")
        return self.mac


def published(bus: MQTTEventBus, topic: str) -> List[str]:
    """Bodies published to a topic, in order."""
    full_topic = bus.full_topic(topic)
    return [
        call.kwargs["payload"]
        for call in bus.client.publish.call_args_list
        if call.args[0] == full_topic
    ]


def published_devices(bus: MQTTEventBus) -> List[dict]:
    return [json.loads(body) for body in published(bus, "device")]


def make_monitor(
    source: SnapshotSource,
    notifier: Notifier,
    tracker: Optional[PresenceTracker] = None,
    poll_interval: float = 0.01,
) -> PresenceMonitor:
    return PresenceMonitor(
        source=source,
        tracker=tracker or PresenceTracker(),
        notifier=notifier,
        poll_interval=poll_interval,
    )
