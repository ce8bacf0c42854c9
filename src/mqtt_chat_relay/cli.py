"""Command-line interface for the MQTT chat relay."""

import asyncio
import logging
from typing import Optional

import click

from .config import AppConfig
from .errors import ConfigError


@click.command()  # type: ignore[misc]
@click.option(  # type: ignore[misc]
    "--mqtt-broker",
    help="MQTT broker address (default: broker.hivemq.com). Environment: MQTT_BROKER",
)
@click.option(  # type: ignore[misc]
    "--mqtt-port",
    type=click.IntRange(1, 65535),
    help="MQTT broker port (default: 1883). Environment: MQTT_PORT",
)
@click.option(  # type: ignore[misc]
    "--mqtt-client-id",
    help="MQTT client ID (default: mqtt_chat_relay). Environment: MQTT_CLIENT_ID",
)
@click.option(  # type: ignore[misc]
    "--mqtt-subscribe-topic",
    help="Inbound topic relayed to the model (default: /esp_gpt_out). Environment: MQTT_SUBSCRIBE_TOPIC",
)
@click.option(  # type: ignore[misc]
    "--mqtt-publish-topic",
    help="Outbound topic for model replies (default: /client_gpt). Environment: MQTT_PUBLISH_TOPIC",
)
@click.option(  # type: ignore[misc]
    "--mqtt-qos",
    type=click.IntRange(0, 2),
    help="MQTT Quality of Service level (default: 0). Environment: MQTT_QOS",
)
@click.option(  # type: ignore[misc]
    "--mqtt-use-tls/--no-mqtt-use-tls",
    default=None,
    help="Enable TLS/SSL for MQTT connection (automatically enabled for port 8883). Environment: MQTT_USE_TLS",
)
@click.option(  # type: ignore[misc]
    "--openai-api-url",
    help="OpenAI-compatible API base URL (default: https://openrouter.ai/api/v1). Environment: OPENAI_API_BASE or OPENROUTER_BASE_URL",
)
@click.option(  # type: ignore[misc]
    "--openai-model",
    help="Model name to use (default: x-ai/grok-4.1-fast). Environment: OPENAI_MODEL or OPENROUTER_MODEL",
)
@click.option(  # type: ignore[misc]
    "--openai-timeout",
    type=float,
    help="Timeout for API requests in seconds (default: 60.0). Environment: OPENAI_TIMEOUT",
)
@click.option(  # type: ignore[misc]
    "--max-history",
    type=click.IntRange(min=1),
    help="Messages kept in the rolling conversation (default: 10). Environment: RELAY_MAX_HISTORY",
)
@click.option(  # type: ignore[misc]
    "--max-message-length",
    type=click.IntRange(min=4),
    help="Maximum message size in bytes (default: 500). Environment: RELAY_MAX_MESSAGE_LENGTH",
)
@click.option(  # type: ignore[misc]
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Application logging level (default: INFO). Environment: LOG_LEVEL",
)
@click.option(  # type: ignore[misc]
    "--dry-run",
    is_flag=True,
    help="Validate configuration and display settings without starting the bridge",
)
def main(
    mqtt_broker: Optional[str],
    mqtt_port: Optional[int],
    mqtt_client_id: Optional[str],
    mqtt_subscribe_topic: Optional[str],
    mqtt_publish_topic: Optional[str],
    mqtt_qos: Optional[int],
    mqtt_use_tls: Optional[bool],
    openai_api_url: Optional[str],
    openai_model: Optional[str],
    openai_timeout: Optional[float],
    max_history: Optional[int],
    max_message_length: Optional[int],
    log_level: Optional[str],
    dry_run: bool,
) -> None:
    """Relay an endless MQTT dialogue through an OpenAI-compatible chat API.

    Every message on the subscribe topic joins a rolling conversation, the
    conversation goes to the chat-completion endpoint and the reply is
    published on the publish topic.

    \b
    Configuration Priority (highest to lowest):
    1. Command-line arguments
    2. Environment variables
    3. Default values

    \b
    Required Configuration:
    - API key (OPENAI_API_KEY or OPENROUTER_API_KEY)

    \b
    Example Usage:
    OPENROUTER_API_KEY=... mqtt-chat-relay --mqtt-subscribe-topic /esp_gpt_out --mqtt-publish-topic /client_gpt
    """
    try:
        app_config = AppConfig.from_env().with_overrides(
            mqtt={
                "broker": mqtt_broker,
                "port": mqtt_port,
                "client_id": mqtt_client_id,
                "subscribe_topic": mqtt_subscribe_topic,
                "publish_topic": mqtt_publish_topic,
                "qos": mqtt_qos,
                "use_tls": mqtt_use_tls,
            },
            openai={
                "api_url": openai_api_url,
                "model": openai_model,
                "timeout": openai_timeout,
            },
            conversation={
                "max_history": max_history,
                "max_message_length": max_message_length,
            },
            log_level=log_level,
        )

        # Setup logging
        logging.basicConfig(
            level=getattr(logging, app_config.log_level),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
        logger = logging.getLogger(__name__)

        # Validate the complete configuration
        app_config.validate_config()

    except ConfigError as e:
        raise click.ClickException(str(e))

    if dry_run:
        click.echo("Configuration validation successful!")
        summary = app_config.get_summary()
        for key, value in summary.items():
            click.echo(f"{key.replace('_', ' ').title()}: {value}")
        return

    from .bridge import MQTTChatBridge

    bridge = MQTTChatBridge(app_config)
    try:
        asyncio.run(bridge.run())
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
    except ConfigError as e:
        logger.error(f"Error: {e}")
        raise click.ClickException(str(e))


if __name__ == "__main__":
    main()
