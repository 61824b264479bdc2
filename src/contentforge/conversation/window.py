"""Bounded, time-expiring chat history used to enrich prompts.

The window owns the message shape and the TTL policy; where the bytes live
is up to the KeyValueStore it is given. Expired entries are dropped lazily
when the window is loaded, never by a background sweeper.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from pydantic import ValidationError

from ..auth.models import utcnow
from ..config import CHAT_HISTORY_KEY, CHAT_HISTORY_TTL
from .base import KeyValueStore
from .models import Message, MessageList

logger = logging.getLogger(__name__)


class ConversationWindow:
    """Chat history with a TTL and seed fallback.

    Usage:
        window = ConversationWindow(store, seed=[Message.assistant("Hello!")])
        await window.load()
        await window.append(Message.user("write a blog post about cats"))
        context = window.recent(5)
    """

    def __init__(
        self,
        store: KeyValueStore,
        seed: Sequence[Message] = (),
        ttl: timedelta = CHAT_HISTORY_TTL,
        key: str = CHAT_HISTORY_KEY,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._seed = list(seed)
        self._ttl = ttl
        self._key = key
        self._clock = clock
        self._messages: list[Message] = list(self._seed)

    async def load(self) -> list[Message]:
        """Read the persisted history, dropping entries older than the TTL.

        Falls back to the seed messages when nothing valid remains.
        """
        raw = await self._store.get(self._key)
        valid: list[Message] = []

        if raw:
            try:
                stored = MessageList.validate_json(raw)
            except ValidationError as e:
                logger.warning("Discarding unreadable chat history: %s", e)
                stored = []
            now = self._clock()
            valid = [m for m in stored if now - m.timestamp < self._ttl]
            if len(valid) < len(stored):
                logger.debug("Dropped %d expired messages", len(stored) - len(valid))

        self._messages = valid or list(self._seed)
        await self._save()
        return self.messages

    async def append(self, message: Message) -> None:
        self._messages.append(message)
        await self._save()

    def recent(self, n: int) -> list[Message]:
        """The most recent `n` messages in chronological order.

        Returns a new list on every call.
        """
        if n <= 0:
            return []
        return list(self._messages[-n:])

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    async def reset(self, seed: Message | None = None) -> None:
        """Start a new conversation, optionally opened by `seed`."""
        self._messages = [seed] if seed is not None else []
        await self._save()

    async def clear(self) -> None:
        """Forget every message, in memory and in storage."""
        self._messages = []
        await self._store.remove(self._key)

    async def truncate(self, length: int) -> None:
        """Drop everything after the first `length` messages (turn rollback)."""
        if length < len(self._messages):
            self._messages = self._messages[:length]
            await self._save()

    async def _save(self) -> None:
        await self._store.set(self._key, MessageList.dump_json(self._messages).decode())
