"""Main MQTT chat relay bridge."""

import asyncio
import logging
import signal
from enum import Enum
from typing import Optional

from .config import AppConfig
from .conversation import ConversationStore, Role
from .errors import CompletionError, PublishError
from .events import (
    ConnectionEstablished,
    InboundEvent,
    MessagePublished,
    OtherEvent,
    TransportFault,
)
from .mqtt_client import MQTTClient
from .openai_client import OpenAIClient
from .sanitizer import truncate_message


class BridgeState(str, Enum):
    """Broker session state as seen by the bridge."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class MQTTChatBridge:
    """Relay between an MQTT topic pair and a chat-completion API.

    A single task polls broker events and handles each one to completion,
    including the completion round trip and the outbound publish, before
    polling again. The conversation store is only touched from that task.
    """

    def __init__(
        self,
        config: AppConfig,
        mqtt_client: Optional[MQTTClient] = None,
        openai_client: Optional[OpenAIClient] = None,
    ) -> None:
        """Initialize the bridge with configuration."""
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.mqtt_client = mqtt_client or MQTTClient(config.mqtt)
        self.openai_client = openai_client or OpenAIClient(config.openai)
        self.conversation = ConversationStore(
            config.conversation.max_history
        )
        self.state = BridgeState.DISCONNECTED
        self.running = False
        self.shutdown_event = asyncio.Event()

    async def handle_event(self, event: InboundEvent) -> None:
        """Apply one broker event."""
        if isinstance(event, ConnectionEstablished):
            self.logger.info(f"Connected to MQTT broker: {event.broker}")
            self.state = BridgeState.CONNECTED
        elif isinstance(event, MessagePublished):
            if event.topic == self.config.mqtt.subscribe_topic:
                await self._handle_inbound(event.payload)
            else:
                self.logger.debug(
                    f"Ignoring message on unrelated topic {event.topic}"
                )
        elif isinstance(event, TransportFault):
            self.logger.warning(f"MQTT transport error: {event.detail}")
            self.state = BridgeState.DISCONNECTED
            await asyncio.sleep(self.config.transport_error_backoff)
        elif isinstance(event, OtherEvent):
            pass

    async def _handle_inbound(self, payload: str) -> None:
        """Run one conversational turn for an inbound message."""
        max_length = self.config.conversation.max_message_length

        inbound = truncate_message(payload, max_length)
        self.conversation.append(
            self.config.conversation.inbound_role, inbound
        )
        self.logger.info(f"Remote said: {inbound}")

        try:
            reply = await self.openai_client.complete(
                self.conversation.snapshot()
            )
        except CompletionError as e:
            # The inbound turn stays in the history for the next request
            self.logger.error(f"Completion failed [{e.kind}]: {e}")
            return

        reply = truncate_message(reply, max_length)
        self.conversation.append(Role.ASSISTANT, reply)
        self.logger.info(f"Reply: {reply}")

        try:
            self.mqtt_client.publish(reply)
        except PublishError as e:
            self.logger.error(f"Reply lost: {e}")

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def signal_handler() -> None:
            self.logger.info("Received shutdown signal, stopping...")
            self.shutdown_event.set()

        loop.add_signal_handler(signal.SIGINT, signal_handler)
        loop.add_signal_handler(signal.SIGTERM, signal_handler)

    async def start(self) -> None:
        """Start the bridge components."""
        self.logger.info("Starting MQTT chat relay...")

        await self.openai_client.connect()
        if not self.config.openai.skip_health_check:
            if not await self.openai_client.health_check():
                self.logger.warning(
                    "OpenAI API health check failed, continuing anyway"
                )

        self.mqtt_client.connect()

        self.running = True
        self.logger.info(
            f"Relaying {self.config.mqtt.subscribe_topic} -> "
            f"{self.config.openai.model} -> {self.config.mqtt.publish_topic}"
        )

    async def stop(self) -> None:
        """Stop the bridge components."""
        self.logger.info("Stopping MQTT chat relay...")
        self.running = False
        self.logger.debug(f"Final status: {self.get_status()}")
        self.mqtt_client.disconnect()
        await self.openai_client.disconnect()
        self.logger.info("MQTT chat relay stopped")

    async def run_forever(self) -> None:
        """Poll and handle broker events until shutdown is requested."""
        while not self.shutdown_event.is_set():
            try:
                event = await asyncio.wait_for(
                    self.mqtt_client.poll(), timeout=1.0
                )
            except asyncio.TimeoutError:
                continue

            try:
                await self.handle_event(event)
            except Exception:
                self.logger.exception(f"Unexpected error handling {event}")

    async def run(self) -> None:
        """Run the bridge application."""
        self._setup_signal_handlers()

        try:
            await self.start()
            self.logger.info("Bridge is running. Press Ctrl+C to stop.")
            await self.run_forever()
        finally:
            await self.stop()

    def get_status(self) -> dict:
        """Get bridge status information."""
        return {
            "running": self.running,
            "state": self.state.value,
            "mqtt_connected": self.mqtt_client.is_connected(),
            "history_length": len(self.conversation),
            "openai_url": self.config.openai.api_url,
            "openai_model": self.config.openai.model,
            "mqtt_broker": f"{self.config.mqtt.broker}:{self.config.mqtt.port}",
            "subscribe_topic": self.config.mqtt.subscribe_topic,
            "publish_topic": self.config.mqtt.publish_topic,
        }
