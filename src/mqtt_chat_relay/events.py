"""Inbound broker events consumed by the bridge loop."""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class ConnectionEstablished:
    """The broker accepted the session."""

    broker: str


@dataclass(frozen=True)
class MessagePublished:
    """A message arrived on a subscribed topic."""

    topic: str
    payload: str


@dataclass(frozen=True)
class TransportFault:
    """The broker connection failed or dropped."""

    detail: str


@dataclass(frozen=True)
class OtherEvent:
    """Anything else the broker reports, e.g. subscription acknowledgements."""

    kind: str


InboundEvent = Union[
    ConnectionEstablished, MessagePublished, TransportFault, OtherEvent
]
