"""MQTT client implementation for the MQTT chat relay."""

import asyncio
import logging
from typing import Any, List, Optional

import paho.mqtt.client as mqtt

from .config import MQTTConfig
from .errors import ConfigError, PublishError
from .events import (
    ConnectionEstablished,
    InboundEvent,
    MessagePublished,
    OtherEvent,
    TransportFault,
)


class MQTTClient:
    """MQTT session that turns paho callbacks into pollable events.

    paho runs its network loop on a background thread. Every callback is
    handed to the asyncio loop captured in ``connect()`` and queued, so the
    bridge consumes events one at a time from a single task.
    """

    def __init__(self, config: MQTTConfig) -> None:
        """Initialize MQTT client with configuration."""
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.client: Optional[mqtt.Client] = None
        self.connected = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._events: "asyncio.Queue[InboundEvent]" = asyncio.Queue(
            maxsize=config.event_queue_size
        )

    def _emit(self, event: InboundEvent) -> None:
        """Hand an event from the network thread to the asyncio loop."""
        if self._loop is None or self._loop.is_closed():
            self.logger.error(f"No event loop available, dropping {event}")
            return
        try:
            self._loop.call_soon_threadsafe(self._enqueue, event)
        except RuntimeError:
            # Loop closed after the check above
            self.logger.error(f"Event loop closed, dropping {event}")

    def _enqueue(self, event: InboundEvent) -> None:
        if self._events.full():
            self.logger.warning(
                f"Event queue full ({self._events.maxsize}), dropping {event}"
            )
            return
        self._events.put_nowait(event)

    async def poll(self) -> InboundEvent:
        """Wait for the next broker event."""
        return await self._events.get()

    def _on_connect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any = None,
    ) -> None:
        """Handle MQTT connection event."""
        if reason_code.is_failure:
            self.connected = False
            self.logger.error(f"MQTT connection failed: {reason_code}")
            self._emit(TransportFault(f"connection refused: {reason_code}"))
            return

        self.connected = True
        self.logger.info(f"Connected to MQTT broker {self.config.broker}")
        # Subscribing here restores the subscription after every reconnect
        client.subscribe(self.config.subscribe_topic, qos=self.config.qos)
        self.logger.info(f"Subscribed to topic: {self.config.subscribe_topic}")
        self._emit(ConnectionEstablished(self.config.broker))

    def _on_connect_fail(self, client: mqtt.Client, userdata: Any) -> None:
        """Handle a connection attempt that never reached the broker."""
        self.connected = False
        self.logger.warning(
            f"Could not reach MQTT broker {self.config.broker}:{self.config.port}"
        )
        self._emit(
            TransportFault(
                f"connection to {self.config.broker}:{self.config.port} failed"
            )
        )

    def _on_disconnect(
        self,
        client: mqtt.Client,
        userdata: Any,
        disconnect_flags: Any,
        reason_code: Any,
        properties: Any = None,
    ) -> None:
        """Handle MQTT disconnection event."""
        self.connected = False
        if reason_code.is_failure:
            self.logger.warning(
                f"Unexpected disconnection from MQTT broker: {reason_code}"
            )
            self._emit(TransportFault(f"disconnected: {reason_code}"))
        else:
            self.logger.info("Disconnected from MQTT broker")

    def _on_message(
        self, client: mqtt.Client, userdata: Any, message: mqtt.MQTTMessage
    ) -> None:
        """Handle incoming MQTT messages."""
        payload = message.payload.decode("utf-8", errors="replace")
        self.logger.debug(
            f"Received message on topic {message.topic}: {payload}"
        )
        self._emit(MessagePublished(topic=message.topic, payload=payload))

    def _on_subscribe(
        self,
        client: mqtt.Client,
        userdata: Any,
        mid: int,
        reason_code_list: List[Any],
        properties: Any = None,
    ) -> None:
        """Handle subscription confirmation."""
        self.logger.debug(f"Subscription confirmed: {reason_code_list}")
        self._emit(OtherEvent("subscribed"))

    def _on_publish(
        self,
        client: mqtt.Client,
        userdata: Any,
        mid: int,
        reason_code: Any = None,
        properties: Any = None,
    ) -> None:
        """Handle publish confirmation."""
        self.logger.debug(f"Message published with mid: {mid}")

    def connect(self) -> None:
        """Set up the broker session and start the network loop.

        Connection happens in the background: success and failure both
        arrive later as events from ``poll()``.
        """
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.config.client_id,
        )

        # Set callbacks
        self.client.on_connect = self._on_connect
        self.client.on_connect_fail = self._on_connect_fail
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message
        self.client.on_subscribe = self._on_subscribe
        self.client.on_publish = self._on_publish

        # Configure TLS if enabled or port 8883 is used
        if self.config.use_tls or self.config.port == 8883:
            self.logger.info("Configuring TLS/SSL connection")
            try:
                self.client.tls_set(ca_certs=self.config.tls_ca_certs)
                if self.config.tls_insecure:
                    self.client.tls_insecure_set(True)
                    self.logger.warning(
                        "TLS certificate verification disabled (insecure)"
                    )
            except (OSError, ValueError) as e:
                raise ConfigError(f"Failed to configure TLS: {e}")

        self.client.reconnect_delay_set(min_delay=1, max_delay=30)

        self.logger.info(
            f"Connecting to MQTT broker {self.config.broker}:{self.config.port}"
        )
        self.client.connect_async(
            self.config.broker,
            self.config.port,
            keepalive=self.config.keepalive,
        )
        self.client.loop_start()

    def disconnect(self) -> None:
        """Disconnect from MQTT broker."""
        if self.client:
            self.logger.info("Disconnecting from MQTT broker")
            try:
                self.client.disconnect()
                self.client.loop_stop()
            except Exception as e:
                self.logger.warning(f"Error during MQTT disconnect: {e}")
            finally:
                self.connected = False
                self.client = None

    def publish(self, payload: str) -> None:
        """Publish ``payload`` to the outbound topic without waiting for delivery."""
        if not self.client or not self.connected:
            raise PublishError("Cannot publish: not connected to MQTT broker")

        try:
            result = self.client.publish(
                self.config.publish_topic,
                payload,
                qos=self.config.qos,
                retain=self.config.retain,
            )
        except (ValueError, TypeError) as e:
            raise PublishError(f"Publish rejected: {e}")

        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(
                f"Failed to publish to {self.config.publish_topic}: "
                f"{mqtt.error_string(result.rc)}"
            )

        self.logger.info(f"Response published to {self.config.publish_topic}")
        self.logger.debug(f"Published response: {payload}")

    def is_connected(self) -> bool:
        """Check if client is connected to MQTT broker."""
        return self.connected
