"""Tests for environment variable configuration."""

import pytest

from mqtt_chat_relay.config import AppConfig, MQTTConfig, OpenAIConfig
from mqtt_chat_relay.conversation import Role
from mqtt_chat_relay.errors import ConfigError


class TestEnvironmentConfig:
    """Test environment variable configuration loading."""

    def test_from_env_valid_config(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test loading valid configuration from environment variables."""
        env_vars = {
            "MQTT_BROKER": "test.mqtt.com",
            "MQTT_PORT": "8883",
            "MQTT_CLIENT_ID": "relay-1",
            "MQTT_SUBSCRIBE_TOPIC": "input/test",
            "MQTT_PUBLISH_TOPIC": "output/test",
            "MQTT_QOS": "1",
            "MQTT_RETAIN": "true",
            "OPENAI_API_KEY": "sk-test",
            "OPENAI_API_BASE": "http://test.openai.com/v1",
            "OPENAI_MODEL": "test-model",
            "OPENAI_TIMEOUT": "45.0",
            "OPENAI_MAX_TOKENS": "500",
            "RELAY_MAX_HISTORY": "4",
            "RELAY_MAX_MESSAGE_LENGTH": "64",
            "RELAY_INBOUND_ROLE": "user",
            "LOG_LEVEL": "DEBUG",
        }

        for key, value in env_vars.items():
            monkeypatch.setenv(key, value)

        config = AppConfig.from_env()

        assert config.mqtt.broker == "test.mqtt.com"
        assert config.mqtt.port == 8883
        assert config.mqtt.client_id == "relay-1"
        assert config.mqtt.subscribe_topic == "input/test"
        assert config.mqtt.publish_topic == "output/test"
        assert config.mqtt.qos == 1
        assert config.mqtt.retain is True
        assert config.openai.api_key == "sk-test"
        assert config.openai.api_url == "http://test.openai.com/v1"
        assert config.openai.model == "test-model"
        assert config.openai.timeout == 45.0
        assert config.openai.max_tokens == 500
        assert config.conversation.max_history == 4
        assert config.conversation.max_message_length == 64
        assert config.conversation.inbound_role is Role.USER
        assert config.log_level == "DEBUG"

    def test_from_env_defaults(self) -> None:
        """Test that defaults are used when environment variables are not set."""
        config = AppConfig.from_env({})

        assert config.mqtt.broker == "broker.hivemq.com"
        assert config.mqtt.port == 1883
        assert config.mqtt.client_id == "mqtt_chat_relay"
        assert config.mqtt.subscribe_topic == "/esp_gpt_out"
        assert config.mqtt.publish_topic == "/client_gpt"
        assert config.mqtt.qos == 0
        assert config.mqtt.retain is False
        assert config.openai.api_key is None
        assert config.openai.api_url == "https://openrouter.ai/api/v1"
        assert config.openai.model == "x-ai/grok-4.1-fast"
        assert config.openai.timeout == 60.0
        assert config.openai.max_tokens is None
        assert config.openai.temperature == 0.7
        assert config.conversation.max_history == 10
        assert config.conversation.max_message_length == 500
        assert config.conversation.inbound_role is Role.ASSISTANT
        assert config.log_level == "INFO"

    def test_fallback_variables(self) -> None:
        """OpenRouter variable names are used when the primary ones are unset."""
        config = AppConfig.from_env(
            {
                "OPENROUTER_API_KEY": "or-key",
                "OPENROUTER_BASE_URL": "https://relay.example/api/v1",
                "OPENROUTER_MODEL": "free-model",
            }
        )

        assert config.openai.api_key == "or-key"
        assert config.openai.api_url == "https://relay.example/api/v1"
        assert config.openai.model == "free-model"

    def test_primary_variables_take_precedence(self) -> None:
        """OPENAI_* variables win over their OpenRouter fallbacks."""
        config = AppConfig.from_env(
            {
                "OPENAI_API_KEY": "primary-key",
                "OPENROUTER_API_KEY": "fallback-key",
                "OPENAI_API_BASE": "https://api.openai.com/v1",
                "OPENROUTER_BASE_URL": "https://openrouter.ai/api/v1",
                "OPENAI_MODEL": "gpt-4o-mini",
                "OPENROUTER_MODEL": "free-model",
            }
        )

        assert config.openai.api_key == "primary-key"
        assert config.openai.api_url == "https://api.openai.com/v1"
        assert config.openai.model == "gpt-4o-mini"

    def test_from_env_invalid_port(self) -> None:
        """Test error handling for invalid MQTT port."""
        with pytest.raises(ConfigError, match="Invalid MQTT_PORT value"):
            AppConfig.from_env({"MQTT_PORT": "not_a_number"})

    def test_from_env_out_of_range_port(self) -> None:
        """Validation errors are reported as configuration errors."""
        with pytest.raises(ConfigError):
            AppConfig.from_env({"MQTT_PORT": "70000"})

    def test_from_env_invalid_qos(self) -> None:
        """Test error handling for invalid MQTT QoS."""
        with pytest.raises(ValueError, match="Invalid MQTT_QOS value"):
            AppConfig.from_env({"MQTT_QOS": "invalid"})

    def test_from_env_invalid_timeout(self) -> None:
        """Test error handling for invalid OpenAI timeout."""
        with pytest.raises(ConfigError, match="Invalid OPENAI_TIMEOUT value"):
            AppConfig.from_env({"OPENAI_TIMEOUT": "not_a_float"})

    def test_from_env_invalid_max_history(self) -> None:
        """Test error handling for invalid history size."""
        with pytest.raises(
            ConfigError, match="Invalid RELAY_MAX_HISTORY value"
        ):
            AppConfig.from_env({"RELAY_MAX_HISTORY": "lots"})

    def test_retain_boolean_parsing(self) -> None:
        """Test MQTT retain boolean parsing variations."""
        test_cases = [
            ("true", True),
            ("TRUE", True),
            ("1", True),
            ("yes", True),
            ("on", True),
            ("false", False),
            ("FALSE", False),
            ("0", False),
            ("no", False),
            ("off", False),
            ("anything_else", False),
        ]

        for env_value, expected in test_cases:
            config = AppConfig.from_env({"MQTT_RETAIN": env_value})
            assert config.mqtt.retain is expected


class TestConfigValidation:
    """Test configuration validation methods."""

    def test_validate_config_success(self) -> None:
        """Test successful configuration validation."""
        config = AppConfig(openai=OpenAIConfig(api_key="sk-test"))

        # Should not raise any exception
        config.validate_config()

    def test_validate_config_missing_api_key(self) -> None:
        """A missing credential is fatal."""
        config = AppConfig()

        with pytest.raises(ConfigError, match="API key is required"):
            config.validate_config()

    def test_validate_config_missing_topics(self) -> None:
        """Test validation fails with empty topics and reports all of them."""
        config = AppConfig(
            mqtt=MQTTConfig(subscribe_topic="", publish_topic=""),
            openai=OpenAIConfig(api_key="sk-test"),
        )

        with pytest.raises(ConfigError) as exc_info:
            config.validate_config()

        assert "MQTT subscribe topic is required" in str(exc_info.value)
        assert "MQTT publish topic is required" in str(exc_info.value)

    def test_validate_config_missing_model(self) -> None:
        """Test validation fails with missing model name."""
        config = AppConfig(openai=OpenAIConfig(api_key="sk-test", model=""))

        with pytest.raises(ValueError, match="Model name is required"):
            config.validate_config()

    def test_get_summary(self) -> None:
        """Test configuration summary generation."""
        config = AppConfig(
            mqtt=MQTTConfig(
                broker="test.mqtt.com",
                subscribe_topic="input/test",
                publish_topic="output/test",
                qos=1,
                retain=True,
            ),
            openai=OpenAIConfig(
                api_key="sk-secret",
                model="test-model",
                api_url="http://test.com/v1",
                timeout=45.0,
            ),
            log_level="DEBUG",
        )

        summary = config.get_summary()

        assert summary["mqtt_broker"] == "test.mqtt.com:1883"
        assert summary["mqtt_subscribe_topic"] == "input/test"
        assert summary["mqtt_publish_topic"] == "output/test"
        assert summary["mqtt_qos"] == 1
        assert summary["mqtt_retain"] is True
        assert summary["openai_api_url"] == "http://test.com/v1"
        assert summary["openai_model"] == "test-model"
        assert summary["openai_timeout"] == 45.0
        assert summary["openai_api_key_set"] is True
        assert summary["max_history"] == 10
        assert summary["inbound_role"] == "assistant"
        assert summary["log_level"] == "DEBUG"
        assert "sk-secret" not in str(summary)
