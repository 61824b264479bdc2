"""Conversation context for prompt enrichment.

Provides the time-expiring chat window, the cached document and the
key-value storage backends they persist through.
"""

from .base import KeyValueStore
from .document import DocumentState
from .factory import create_key_value_store
from .in_memory import InMemoryKeyValueStore
from .models import Message, MessageList, Role, to_context_string
from .window import ConversationWindow

__all__ = [
    "ConversationWindow",
    "DocumentState",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "Message",
    "MessageList",
    "Role",
    "create_key_value_store",
    "to_context_string",
]
