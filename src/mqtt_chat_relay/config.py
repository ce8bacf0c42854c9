"""Configuration management for the MQTT chat relay."""

import os
from typing import Any, Dict, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .conversation import Role
from .errors import ConfigError

DEFAULT_API_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "x-ai/grok-4.1-fast"

TRUE_VALUES = ("true", "1", "yes", "on")


class MQTTConfig(BaseModel):
    """MQTT configuration settings."""

    model_config = ConfigDict(frozen=True)

    broker: str = Field(
        default="broker.hivemq.com", description="MQTT broker address"
    )
    port: int = Field(default=1883, description="MQTT broker port")
    client_id: str = Field(
        default="mqtt_chat_relay", description="MQTT client ID"
    )
    subscribe_topic: str = Field(
        default="/esp_gpt_out", description="Inbound topic to relay from"
    )
    publish_topic: str = Field(
        default="/client_gpt", description="Outbound topic for replies"
    )
    qos: int = Field(
        default=0, ge=0, le=2, description="Quality of Service level"
    )
    retain: bool = Field(default=False, description="Retain messages")
    keepalive: int = Field(
        default=5, gt=0, description="Keep-alive interval in seconds"
    )
    event_queue_size: int = Field(
        default=10,
        gt=0,
        description="Broker events buffered while a reply is in flight",
    )
    use_tls: bool = Field(
        default=False, description="Enable TLS/SSL connection"
    )
    tls_ca_certs: Optional[str] = Field(
        default=None, description="Path to CA certificates file"
    )
    tls_insecure: bool = Field(
        default=False, description="Skip certificate verification (insecure)"
    )

    @field_validator("port")  # type: ignore[misc]
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate MQTT port range."""
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v


class OpenAIConfig(BaseModel):
    """OpenAI-compatible API configuration settings."""

    model_config = ConfigDict(frozen=True)

    api_url: str = Field(
        default=DEFAULT_API_URL,
        description="OpenAI-compatible API base URL (e.g. OpenRouter)",
    )
    api_key: Optional[str] = Field(
        default=None, description="Bearer credential for the API"
    )
    model: str = Field(default=DEFAULT_MODEL, description="Model name")
    system_prompt: Optional[str] = Field(
        default=None,
        description="Optional system message sent ahead of the history",
    )
    timeout: float = Field(
        default=60.0, gt=0, description="API request timeout"
    )
    max_tokens: Optional[int] = Field(
        default=None, gt=0, description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature (0.0-2.0)",
    )
    skip_health_check: bool = Field(
        default=False,
        description="Skip health check on startup (useful for APIs that don't support /models)",
    )


class ConversationConfig(BaseModel):
    """Rolling conversation bounds."""

    model_config = ConfigDict(frozen=True)

    max_history: int = Field(
        default=10, ge=1, description="Messages kept in the conversation"
    )
    max_message_length: int = Field(
        default=500, ge=4, description="Maximum message size in bytes"
    )
    # Inbound device turns are tagged "assistant" too, so the model sees a
    # single speaker continuing its own monologue.
    inbound_role: Role = Field(
        default=Role.ASSISTANT, description="Role given to inbound messages"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    model_config = ConfigDict(frozen=True)

    mqtt: MQTTConfig = Field(default_factory=MQTTConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    conversation: ConversationConfig = Field(
        default_factory=ConversationConfig
    )
    log_level: str = Field(default="INFO", description="Logging level")
    transport_error_backoff: float = Field(
        default=0.1,
        ge=0.0,
        description="Pause in seconds after a broker transport error",
    )

    @field_validator("log_level")  # type: ignore[misc]
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "AppConfig":
        """Load configuration from environment variables with validation."""
        env = os.environ if environ is None else environ

        def get(*names: str, default: Optional[str] = None) -> Optional[str]:
            # First variable that is set wins
            for name in names:
                value = env.get(name)
                if value:
                    return value
            return default

        def get_int(name: str, default: str) -> int:
            value = get(name, default=default)
            try:
                return int(value)  # type: ignore[arg-type]
            except ValueError:
                raise ConfigError(
                    f"Invalid {name} value: {value}. Must be an integer."
                )

        def get_float(name: str, default: str) -> float:
            value = get(name, default=default)
            try:
                return float(value)  # type: ignore[arg-type]
            except ValueError:
                raise ConfigError(
                    f"Invalid {name} value: {value}. Must be a number."
                )

        def get_bool(name: str) -> bool:
            return (get(name, default="false") or "").lower() in TRUE_VALUES

        max_tokens_str = get("OPENAI_MAX_TOKENS")

        try:
            mqtt_config = MQTTConfig(
                broker=get("MQTT_BROKER", default="broker.hivemq.com"),
                port=get_int("MQTT_PORT", "1883"),
                client_id=get("MQTT_CLIENT_ID", default="mqtt_chat_relay"),
                subscribe_topic=get(
                    "MQTT_SUBSCRIBE_TOPIC", default="/esp_gpt_out"
                ),
                publish_topic=get("MQTT_PUBLISH_TOPIC", default="/client_gpt"),
                qos=get_int("MQTT_QOS", "0"),
                retain=get_bool("MQTT_RETAIN"),
                keepalive=get_int("MQTT_KEEPALIVE", "5"),
                event_queue_size=get_int("MQTT_EVENT_QUEUE_SIZE", "10"),
                use_tls=get_bool("MQTT_USE_TLS"),
                tls_ca_certs=get("MQTT_TLS_CA_CERTS"),
                tls_insecure=get_bool("MQTT_TLS_INSECURE"),
            )

            openai_config = OpenAIConfig(
                api_url=get(
                    "OPENAI_API_BASE",
                    "OPENROUTER_BASE_URL",
                    default=DEFAULT_API_URL,
                ),
                api_key=get("OPENAI_API_KEY", "OPENROUTER_API_KEY"),
                model=get(
                    "OPENAI_MODEL", "OPENROUTER_MODEL", default=DEFAULT_MODEL
                ),
                system_prompt=get("OPENAI_SYSTEM_PROMPT"),
                timeout=get_float("OPENAI_TIMEOUT", "60.0"),
                max_tokens=(
                    get_int("OPENAI_MAX_TOKENS", "0")
                    if max_tokens_str
                    else None
                ),
                temperature=get_float("OPENAI_TEMPERATURE", "0.7"),
                skip_health_check=get_bool("OPENAI_SKIP_HEALTH_CHECK"),
            )

            conversation_config = ConversationConfig(
                max_history=get_int("RELAY_MAX_HISTORY", "10"),
                max_message_length=get_int("RELAY_MAX_MESSAGE_LENGTH", "500"),
                inbound_role=get("RELAY_INBOUND_ROLE", default="assistant"),
            )

            return cls(
                mqtt=mqtt_config,
                openai=openai_config,
                conversation=conversation_config,
                log_level=get("LOG_LEVEL", default="INFO"),
                transport_error_backoff=get_float(
                    "RELAY_TRANSPORT_ERROR_BACKOFF", "0.1"
                ),
            )

        except (ValidationError, ConfigError) as e:
            raise ConfigError(
                f"Configuration error from environment variables: {e}"
            )

    def with_overrides(
        self,
        mqtt: Optional[Dict[str, Any]] = None,
        openai: Optional[Dict[str, Any]] = None,
        conversation: Optional[Dict[str, Any]] = None,
        **top_level: Any,
    ) -> "AppConfig":
        """Return a validated copy with the given non-None values replaced."""

        def merged(
            section: BaseModel, updates: Optional[Dict[str, Any]]
        ) -> Dict[str, Any]:
            values = section.model_dump()
            values.update(
                {k: v for k, v in (updates or {}).items() if v is not None}
            )
            return values

        values = {k: v for k, v in top_level.items() if v is not None}
        try:
            return AppConfig(
                mqtt=MQTTConfig(**merged(self.mqtt, mqtt)),
                openai=OpenAIConfig(**merged(self.openai, openai)),
                conversation=ConversationConfig(
                    **merged(self.conversation, conversation)
                ),
                log_level=values.get("log_level", self.log_level),
                transport_error_backoff=values.get(
                    "transport_error_backoff", self.transport_error_backoff
                ),
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration override: {e}")

    def validate_config(self) -> None:
        """Validate the complete configuration and check for issues."""
        errors = []

        # Validate required MQTT fields
        if not self.mqtt.broker:
            errors.append("MQTT broker is required")
        if not self.mqtt.client_id:
            errors.append("MQTT client ID is required")
        if not self.mqtt.subscribe_topic:
            errors.append("MQTT subscribe topic is required")
        if not self.mqtt.publish_topic:
            errors.append("MQTT publish topic is required")

        # Validate required API fields
        if not self.openai.api_key:
            errors.append(
                "API key is required (set OPENAI_API_KEY or OPENROUTER_API_KEY)"
            )
        if not self.openai.api_url:
            errors.append("API URL is required")
        if not self.openai.model:
            errors.append("Model name is required")

        if errors:
            raise ConfigError(
                "Configuration validation failed:\n"
                + "\n".join(f"- {error}" for error in errors)
            )

    def get_summary(self) -> dict:
        """Get a summary of the configuration for logging/display."""
        return {
            "mqtt_broker": f"{self.mqtt.broker}:{self.mqtt.port}",
            "mqtt_client_id": self.mqtt.client_id,
            "mqtt_subscribe_topic": self.mqtt.subscribe_topic,
            "mqtt_publish_topic": self.mqtt.publish_topic,
            "mqtt_qos": self.mqtt.qos,
            "mqtt_retain": self.mqtt.retain,
            "openai_api_url": self.openai.api_url,
            "openai_model": self.openai.model,
            "openai_timeout": self.openai.timeout,
            "openai_api_key_set": bool(self.openai.api_key),
            "max_history": self.conversation.max_history,
            "max_message_length": self.conversation.max_message_length,
            "inbound_role": self.conversation.inbound_role.value,
            "log_level": self.log_level,
        }
