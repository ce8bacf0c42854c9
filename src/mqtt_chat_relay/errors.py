"""Error taxonomy for the MQTT chat relay."""

from typing import Optional


class BridgeError(Exception):
    """Base class for all relay errors."""


class ConfigError(BridgeError, ValueError):
    """Invalid or missing configuration. Fatal at startup."""


class TransportError(BridgeError):
    """Broker-level failure."""


class PublishError(TransportError):
    """An outbound publish could not be handed to the broker."""


class CompletionError(BridgeError):
    """A chat-completion round trip did not yield a usable reply."""

    kind = "completion"


class EmptyChoiceError(CompletionError):
    """The completion response carried no choices."""

    kind = "empty_choice"


class NoContentError(CompletionError):
    """The first choice carried no text content."""

    kind = "no_content"


class CompletionTransportError(CompletionError):
    """HTTP or protocol failure talking to the completion endpoint."""

    kind = "transport"

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status
