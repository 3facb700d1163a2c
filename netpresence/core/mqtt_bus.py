"""MQTT Event Bus for presence publications and alerts."""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Union
from collections import defaultdict

import aiomqtt

from .errors import ConnectFailed, PublishFailed, SubscribeFailed


logger = logging.getLogger(__name__)

Payload = Union[str, Dict[str, Any]]


class MQTTEventBus:
    """
    MQTT-based event bus for presence notifications.

    Topic Structure:
        {prefix}/device        full device list on every change
        {prefix}/alert         human-readable join/leave alerts
        {prefix}/new_device    inbound new device announcements
    """

    DEVICE_TOPIC = "device"
    ALERT_TOPIC = "alert"
    NEW_DEVICE_TOPIC = "new_device"

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id: str = "device_publisher",
        topic_prefix: str = "NETWORK",
        qos: int = 0,
        keepalive: int = 60,
    ):
        self.broker = broker
        self.port = port
        self.username = username
        self.password = password
        self.client_id = client_id
        self.topic_prefix = topic_prefix
        self.qos = qos
        self.keepalive = keepalive

        self.client: Optional[aiomqtt.Client] = None
        self._subscriptions: Dict[str, List[Callable]] = defaultdict(list)
        self._running = False
        self._message_task: Optional[asyncio.Task] = None

    @property
    def connected(self) -> bool:
        return self.client is not None and self._running

    async def connect(self) -> None:
        """Connect to MQTT broker."""
        logger.info(f"Connecting to MQTT broker at {self.broker}:{self.port}")

        client = aiomqtt.Client(
            hostname=self.broker,
            port=self.port,
            username=self.username,
            password=self.password,
            identifier=self.client_id,
            keepalive=self.keepalive,
        )

        try:
            await client.__aenter__()
        except aiomqtt.MqttError as e:
            raise ConnectFailed(
                f"Unable to connect to MQTT broker at {self.broker}:{self.port}: {e}"
            ) from e

        self.client = client
        self._running = True

        # Start message handling task
        self._message_task = asyncio.create_task(self._handle_messages())

        logger.info("Connected to MQTT broker")

    async def disconnect(self) -> None:
        """Disconnect from MQTT broker. Safe to call more than once."""
        if not self.client:
            return

        logger.info("Disconnecting from MQTT broker")

        self._running = False

        if self._message_task:
            self._message_task.cancel()
            try:
                await self._message_task
            except asyncio.CancelledError:
                pass
            self._message_task = None

        client, self.client = self.client, None
        try:
            await client.__aexit__(None, None, None)
        except aiomqtt.MqttError as e:
            logger.warning(f"Error while disconnecting from MQTT broker: {e}")

        self._subscriptions.clear()
        logger.info("Disconnected from MQTT broker")

    def full_topic(self, topic: str) -> str:
        if not self.topic_prefix:
            return topic
        return f"{self.topic_prefix}/{topic}"

    async def publish(
        self,
        topic: str,
        payload: Payload,
        qos: Optional[int] = None,
        retain: bool = False,
    ) -> None:
        """
        Publish a message to a topic.

        Args:
            topic: Topic to publish to (will be prefixed automatically)
            payload: Dicts are JSON encoded, strings are sent verbatim
            qos: Quality of Service (0, 1, or 2)
            retain: Retain message on broker

        Raises:
            PublishFailed: If not connected or the client rejects the message
        """
        full_topic = self.full_topic(topic)

        if not self.client:
            raise PublishFailed(full_topic, "not connected to MQTT broker")

        if isinstance(payload, str):
            body = payload
        else:
            body = json.dumps(payload)

        try:
            await self.client.publish(
                full_topic,
                payload=body,
                qos=self.qos if qos is None else qos,
                retain=retain,
            )
        except aiomqtt.MqttError as e:
            raise PublishFailed(full_topic, str(e)) from e

        logger.debug(f"Published to {full_topic}: {body[:100]}")

    async def subscribe(self, topic: str, callback: Callable[[str, Payload], Any]) -> None:
        """
        Subscribe to a topic.

        Args:
            topic: Topic pattern to subscribe to (supports MQTT wildcards: +, #)
            callback: Sync or async callback function(topic, payload)

        Raises:
            SubscribeFailed: If not connected or the broker rejects the subscription
        """
        full_topic = self.full_topic(topic)

        if not self.client:
            raise SubscribeFailed(f"Unable to subscribe to {full_topic}: not connected")

        try:
            await self.client.subscribe(full_topic, qos=self.qos)
        except aiomqtt.MqttError as e:
            raise SubscribeFailed(f"Unable to subscribe to topic {full_topic}: {e}") from e

        self._subscriptions[full_topic].append(callback)

        logger.info(f"Subscribed to {full_topic}")

    async def _handle_messages(self) -> None:
        """Handle incoming MQTT messages."""
        if not self.client:
            return

        try:
            async for message in self.client.messages:
                try:
                    topic = message.topic.value
                    payload = self._decode_payload(message.payload)

                    logger.debug(f"Received message on {topic}: {str(payload)[:100]}")

                    await self._dispatch_message(topic, payload)

                except Exception as e:
                    logger.error(f"Error handling message: {e}", exc_info=True)

        except asyncio.CancelledError:
            logger.debug("Message handler cancelled")
            raise
        except aiomqtt.MqttError as e:
            logger.error(f"Message handler error: {e}", exc_info=True)

    @staticmethod
    def _decode_payload(raw: Any) -> Payload:
        """Decode a raw payload to a dict when it is a JSON object, else to a string."""
        if isinstance(raw, (bytes, bytearray)):
            text = raw.decode("utf-8", errors="replace")
        elif raw is None:
            text = ""
        else:
            text = str(raw)

        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            return text

        return decoded if isinstance(decoded, dict) else text

    async def _dispatch_message(self, topic: str, payload: Payload) -> None:
        """Dispatch message to matching subscribers."""
        prefix = f"{self.topic_prefix}/" if self.topic_prefix else ""

        for pattern, callbacks in list(self._subscriptions.items()):
            if not self._topic_matches(topic, pattern):
                continue

            # Extract topic without prefix for callback
            topic_without_prefix = topic[len(prefix):] if prefix and topic.startswith(prefix) else topic

            for callback in callbacks:
                try:
                    if asyncio.iscoroutinefunction(callback):
                        await callback(topic_without_prefix, payload)
                    else:
                        callback(topic_without_prefix, payload)

                except Exception as e:
                    logger.error(f"Error in callback for {topic}: {e}", exc_info=True)

    @staticmethod
    def _topic_matches(topic: str, pattern: str) -> bool:
        """
        Check if topic matches pattern (with MQTT wildcards).

        + matches single level
        # matches multiple levels
        """
        topic_parts = topic.split('/')
        pattern_parts = pattern.split('/')

        # Multi-level wildcard
        if '#' in pattern_parts:
            hash_index = pattern_parts.index('#')
            if hash_index != len(pattern_parts) - 1:
                return False  # # must be last
            pattern_parts = pattern_parts[:hash_index]
            topic_parts = topic_parts[:hash_index]

        if len(topic_parts) != len(pattern_parts):
            return False

        for t, p in zip(topic_parts, pattern_parts):
            if p != '+' and p != t:
                return False

        return True

    # Convenience methods for presence topics

    async def publish_device_state(self, payload: Dict[str, Any]) -> None:
        """Publish the current device list."""
        await self.publish(self.DEVICE_TOPIC, payload)

    async def publish_alert(self, message: str) -> None:
        """Publish a plain-text alert."""
        await self.publish(self.ALERT_TOPIC, message)

    async def subscribe_new_device(self, callback: Callable) -> None:
        """Subscribe to new device announcements."""
        await self.subscribe(self.NEW_DEVICE_TOPIC, callback)
