"""
MQTT Client

Thin wrapper around paho-mqtt used by both the simulator (publishing) and the
dashboard consumer (subscribing). Delivery is fire-and-forget at QoS 0;
reconnects are left to paho's own reconnect loop.
"""

import asyncio
import json
import logging
import random
from typing import Any, Callable, Iterable, List, Optional

import paho.mqtt.client as mqtt
from pydantic import BaseModel

from flood_mitigation.core.config import settings
from flood_mitigation.core.constants import (
    DEVICE_ID_ALPHABET,
    DEVICE_ID_SUFFIX_LENGTH,
)

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, bytes], None]


def make_client_id(prefix: str) -> str:
    suffix = "".join(
        random.choice(DEVICE_ID_ALPHABET) for _ in range(DEVICE_ID_SUFFIX_LENGTH)
    )
    return f"{prefix}-{suffix}"


def encode_payload(payload: Any) -> str:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json", by_alias=True, exclude_none=True)
    if not isinstance(payload, str):
        payload = json.dumps(payload)
    return payload


class MQTTClient:
    """
    Persistent MQTT connection with a background network loop.
    """

    def __init__(
        self,
        broker_host: str = None,
        broker_port: int = None,
        client_id: str = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        keepalive: int = None,
    ):
        """
        Initialize MQTT client.

        Args:
            broker_host: MQTT broker hostname (default: settings.mqtt_broker_host)
            broker_port: MQTT broker port (default: settings.mqtt_broker_port)
            client_id: Client id; a random one is generated from the prefix setting
            username: Optional username (default: settings.mqtt_username)
            password: Optional password (default: settings.mqtt_password)
            keepalive: Keepalive in seconds (default: settings.mqtt_keepalive)
        """
        self.broker_host = broker_host or settings.mqtt_broker_host
        self.broker_port = broker_port or settings.mqtt_broker_port
        self.client_id = client_id or make_client_id(settings.mqtt_client_prefix)
        self.keepalive = keepalive or settings.mqtt_keepalive
        self.connected = False

        self._subscriptions: List[str] = []
        self._handler: Optional[MessageHandler] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self._client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            clean_session=True,
        )
        user = username or settings.mqtt_username
        pw = password or settings.mqtt_password
        if user:
            self._client.username_pw_set(user, pw)
        self._client.reconnect_delay_set(
            min_delay=settings.mqtt_reconnect_min_delay,
            max_delay=settings.mqtt_reconnect_max_delay,
        )
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

    # --- Connection lifecycle ---

    def connect(self) -> None:
        """
        Start connecting in the background.

        Failures are logged by the callbacks; paho keeps retrying.
        """
        logger.info(
            f"Connecting to MQTT broker {self.broker_host}:{self.broker_port} "
            f"as {self.client_id}"
        )
        try:
            self._client.connect_async(
                self.broker_host, self.broker_port, keepalive=self.keepalive
            )
        except (OSError, ValueError) as e:
            logger.error(f"MQTT connect error: {e}")
        self._client.loop_start()

    def disconnect(self) -> None:
        logger.info("Closing MQTT connection")
        self._client.disconnect()
        self._client.loop_stop()
        self.connected = False

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            self.connected = False
            logger.error(f"MQTT connection refused: {reason_code}")
            return

        self.connected = True
        logger.info(f"Connected to MQTT broker {self.broker_host}")
        if self._subscriptions:
            client.subscribe([(topic, 0) for topic in self._subscriptions])
            logger.info(f"Subscribed to {self._subscriptions}")

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        self.connected = False
        if reason_code.is_failure:
            logger.warning(f"MQTT connection lost ({reason_code}), reconnecting")
        else:
            logger.info("MQTT connection closed")

    # --- Publishing ---

    def publish(self, topic: str, payload: Any) -> bool:
        """
        Publish a message without waiting for delivery.

        Args:
            topic: MQTT topic
            payload: str, JSON-serializable object or pydantic model

        Returns:
            True if the message was handed to the network loop
        """
        message = encode_payload(payload)
        try:
            result = self._client.publish(topic, message, qos=0)
        except (OSError, ValueError) as e:
            logger.error(f"MQTT publish error on {topic}: {e}")
            return False

        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.error(
                f"Failed to publish to {topic}: {mqtt.error_string(result.rc)}"
            )
            return False

        logger.debug(f"Published to {topic}: {message[:100]}")
        return True

    # --- Subscribing ---

    def subscribe(
        self,
        topics: Iterable[str],
        handler: MessageHandler,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """
        Register ``handler(topic, payload)`` for the given topics.

        With ``loop`` set, the handler is scheduled on that event loop instead
        of running on paho's network thread.
        """
        self._subscriptions = list(topics)
        self._handler = handler
        self._loop = loop
        if self.connected:
            self._client.subscribe([(topic, 0) for topic in self._subscriptions])

    def _on_message(self, client, userdata, message):
        if self._handler is None:
            return
        if self._loop is not None:
            self._loop.call_soon_threadsafe(
                self._handler, message.topic, message.payload
            )
        else:
            self._handler(message.topic, message.payload)
