"""Bounded rolling conversation history."""

from collections import deque
from enum import Enum
from typing import Deque, Dict, Tuple

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """Conversation roles, valued as the completion API expects them."""

    USER = "user"
    ASSISTANT = "assistant"


class ConversationMessage(BaseModel):
    """A single role-tagged turn."""

    model_config = ConfigDict(frozen=True)

    role: Role
    text: str

    def to_api(self) -> Dict[str, str]:
        """Render in chat-completions request format."""
        return {"role": self.role.value, "content": self.text}


class ConversationStore:
    """Ordered history holding at most ``max_history`` messages.

    New messages go on the tail; once capacity is exceeded the oldest
    messages are evicted from the head.
    """

    def __init__(self, max_history: int = 10) -> None:
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        self.max_history = max_history
        self._messages: Deque[ConversationMessage] = deque()

    def __len__(self) -> int:
        return len(self._messages)

    def append(self, role: Role, text: str) -> ConversationMessage:
        """Append a message and evict from the head down to capacity."""
        message = ConversationMessage(role=role, text=text)
        self._messages.append(message)
        while len(self._messages) > self.max_history:
            self._messages.popleft()
        return message

    def snapshot(self) -> Tuple[ConversationMessage, ...]:
        """Return an immutable copy of the current history."""
        return tuple(self._messages)
