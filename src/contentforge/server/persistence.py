"""Persistence collaborator for generated content.

Saving is best-effort: the route logs and swallows repository failures so a
successful generation is never turned into an error.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ..config import TITLE_MAX_LENGTH


class ContentType(str, Enum):
    BLOG = "blog"
    FACEBOOK = "facebook"
    SCRIPT = "script"


_TYPE_KEYWORDS: tuple[tuple[ContentType, tuple[str, ...]], ...] = (
    (ContentType.BLOG, ("blog", "article", "post")),
    (ContentType.FACEBOOK, ("facebook", "social media", "fb")),
    (ContentType.SCRIPT, ("script", "video", "dialogue")),
)


def detect_content_type(prompt: str) -> ContentType:
    """Guess the content type from keywords in the prompt (blog by default)."""
    lowered = prompt.lower()
    for content_type, keywords in _TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return content_type
    return ContentType.BLOG


class ContentRecord(BaseModel):
    """A saved piece of generated content."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    title: str = Field(min_length=1)
    body: str = Field(min_length=1)
    type: ContentType
    model: str

    @classmethod
    def from_generation(cls, user_id: str, prompt: str, body: str, model: str) -> "ContentRecord":
        return cls(
            user_id=user_id,
            title=prompt[:TITLE_MAX_LENGTH],
            body=body,
            type=detect_content_type(prompt),
            model=model,
        )


class ContentRepository(ABC):
    """CRUD record store, insert-only from the pipeline's point of view."""

    @abstractmethod
    async def insert(self, record: ContentRecord) -> None:
        """Persist `record`."""


class InMemoryContentRepository(ContentRepository):
    """List-backed repository for development and tests."""

    def __init__(self):
        self.records: list[ContentRecord] = []

    async def insert(self, record: ContentRecord) -> None:
        self.records.append(record)


class PostgrestContentRepository(ContentRepository):
    """Inserts into a PostgREST (Supabase) `content` table."""

    def __init__(self, url: str, api_key: str, table: str = "content", client: httpx.AsyncClient | None = None):
        self._table = table
        self._client = client or httpx.AsyncClient(
            base_url=url.rstrip("/"),
            headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
            timeout=30.0,
        )

    async def insert(self, record: ContentRecord) -> None:
        row: dict[str, Any] = {
            "user_id": record.user_id,
            "title": record.title,
            "content": record.body,
            "type": record.type.value,
            "model": record.model,
        }
        response = await self._client.post(
            f"/rest/v1/{self._table}", json=row, headers={"Prefer": "return=minimal"}
        )
        response.raise_for_status()

    async def close(self) -> None:
        await self._client.aclose()
