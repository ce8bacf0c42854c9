"""MQTT to OpenAI-compatible chat API relay with a rolling conversation."""

__version__ = "0.1.0"

from .bridge import BridgeState, MQTTChatBridge
from .config import AppConfig, ConversationConfig, MQTTConfig, OpenAIConfig
from .conversation import ConversationMessage, ConversationStore, Role
from .mqtt_client import MQTTClient
from .openai_client import OpenAIClient
from .sanitizer import truncate_message

__all__ = [
    "MQTTChatBridge",
    "BridgeState",
    "AppConfig",
    "ConversationConfig",
    "MQTTConfig",
    "OpenAIConfig",
    "ConversationMessage",
    "ConversationStore",
    "Role",
    "MQTTClient",
    "OpenAIClient",
    "truncate_message",
]
