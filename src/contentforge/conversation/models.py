"""Data models for the conversation window.

These models define the shape of chat history independent of the
key-value backend that stores it.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..auth.models import utcnow

Role = Literal["user", "assistant"]


class Message(BaseModel):
    """A single chat turn. Immutable once appended."""

    model_config = ConfigDict(frozen=True)

    role: Role = Field(description="Who sent the message: 'user' or 'assistant'")
    content: str = Field(description="Message text")
    timestamp: datetime = Field(default_factory=utcnow)

    @classmethod
    def user(cls, content: str, timestamp: datetime | None = None) -> "Message":
        return cls(role="user", content=content, timestamp=timestamp or utcnow())

    @classmethod
    def assistant(cls, content: str, timestamp: datetime | None = None) -> "Message":
        return cls(role="assistant", content=content, timestamp=timestamp or utcnow())


# Serialized window format: JSON array of messages
MessageList = TypeAdapter(list[Message])


def to_context_string(messages: list[Message]) -> str:
    """Render messages as `role: content` lines for prompt injection."""
    return "\n".join(f"{m.role}: {m.content}" for m in messages)
