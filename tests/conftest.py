"""Pytest configuration and shared fixtures."""
import asyncio
import os
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from contentforge.auth import AuthClient, AuthRefreshError, AuthStateCallback, Credential
from contentforge.conversation import InMemoryKeyValueStore
from contentforge.errors import PipelineError
from contentforge.llm import ChatMessage, LLMProvider, LLMResponse
from contentforge.orchestrator import GenerationRequest, GenerationResponse

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def make_credential(token: str = "token-0", expires_in: timedelta = timedelta(hours=1), now: datetime = NOW) -> Credential:
    return Credential(access_token=token, refresh_token=f"refresh-{token}", expires_at=now + expires_in)


class FakeAuthClient(AuthClient):
    """Auth collaborator that hands out token-1, token-2, ... on refresh."""

    def __init__(
        self,
        session: Credential | None = None,
        reject: bool = False,
        delay: float = 0.0,
        unreachable: bool = False,
    ):
        self.session = session
        self.reject = reject
        self.unreachable = unreachable
        self.delay = delay
        self.refresh_calls = 0
        self.listeners: list[AuthStateCallback] = []

    async def get_session(self) -> Credential | None:
        return self.session

    async def refresh_session(self) -> Credential:
        self.refresh_calls += 1
        await asyncio.sleep(self.delay)
        if self.unreachable:
            raise AuthRefreshError("connection refused", rejected=False)
        if self.reject:
            self.emit("SIGNED_OUT", None)
            raise AuthRefreshError("refresh token revoked")
        self.session = make_credential(f"token-{self.refresh_calls}")
        return self.session

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        self.listeners.append(callback)
        return lambda: self.listeners.remove(callback)

    def emit(self, event: str, session: Credential | None) -> None:
        self.session = session
        for listener in list(self.listeners):
            listener(event, session)


class FakeProvider(LLMProvider):
    """LLM provider that replays scripted results (strings or exceptions)."""

    def __init__(self, name: str, results: list[str | Exception] | None = None):
        self.name = name
        self.results = list(results or [])
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        self.calls.append({"messages": messages, "model": model})
        result = self.results.pop(0) if self.results else "ok"
        if isinstance(result, Exception):
            raise result
        return LLMResponse(content=result, model=model or "default")

    async def close(self) -> None:
        self.closed = True


class ScriptedGenerationClient:
    """Stands in for GenerationClient; replays responses and records requests."""

    def __init__(self, results: list[GenerationResponse | PipelineError | Callable[[], Any]]):
        self.results = list(results)
        self.requests: list[GenerationRequest] = []

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        self.requests.append(request)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return await result()
        return result


@pytest.fixture
def clock():
    """Mutable clock: call to read, `.advance(delta)` to move forward."""
    class Clock:
        def __init__(self):
            self.now = NOW

        def __call__(self) -> datetime:
            return self.now

        def advance(self, delta: timedelta) -> None:
            self.now += delta

    return Clock()


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def auth_client():
    return FakeAuthClient(session=make_credential("token-0"))


@pytest.fixture(scope="session")
def api_keys():
    """Return API keys from environment."""
    return {
        "gemini": os.getenv("GEMINI_API_KEY"),
        "groq": os.getenv("GROQ_API_KEY"),
    }
