"""Cached editor document.

Holds the content produced by GENERATE and EDIT turns so it survives
restarts. An empty document is represented by the absence of the key.
"""

from ..config import DOCUMENT_KEY
from .base import KeyValueStore


class DocumentState:
    """Current document content backed by a KeyValueStore."""

    def __init__(self, store: KeyValueStore, key: str = DOCUMENT_KEY, initial: str = ""):
        self._store = store
        self._key = key
        self._content = initial

    @property
    def content(self) -> str:
        return self._content

    async def load(self) -> str:
        saved = await self._store.get(self._key)
        if saved:
            self._content = saved
        return self._content

    async def update(self, content: str) -> None:
        self._content = content
        if content:
            await self._store.set(self._key, content)
        else:
            await self._store.remove(self._key)

    async def clear(self) -> None:
        await self.update("")
