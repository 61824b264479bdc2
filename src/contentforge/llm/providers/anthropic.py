"""Anthropic Claude provider (caller-keyed).

Reference: https://github.com/anthropics/anthropic-sdk-python
"""

from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from ...errors import UpstreamError
from ..base import LLMProvider
from ..models import ChatMessage, LLMResponse, TokenUsage

# Catalog names -> dated API model ids
MODEL_ALIASES = {
    "claude-3-opus": "claude-3-opus-20240229",
    "claude-3-sonnet": "claude-3-sonnet-20240229",
    "claude-3-haiku": "claude-3-haiku-20240307",
}

# The Messages API requires an explicit limit
DEFAULT_MAX_TOKENS = 4096


def split_system(messages: list[ChatMessage]) -> tuple[str | None, list[dict[str, str]]]:
    """Separate system text (a top-level parameter for Claude) from the turns."""
    system = "\n\n".join(m.content for m in messages if m.role == "system") or None
    turns = [{"role": m.role, "content": m.content} for m in messages if m.role != "system"]
    return system, turns


class AnthropicProvider(LLMProvider):
    """Claude models behind the Messages API."""

    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-sonnet",
        base_url: str | None = None,
        **client_kwargs: Any
    ):
        self._model = model
        self._client = AsyncAnthropic(api_key=api_key, base_url=base_url, **client_kwargs)

    @property
    def model(self) -> str:
        return self._model

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        model_to_use = model or self._model
        system, turns = split_system(messages)

        params: dict[str, Any] = {
            "model": MODEL_ALIASES.get(model_to_use, model_to_use),
            "messages": turns,
            "temperature": temperature,
            "max_tokens": max_tokens or DEFAULT_MAX_TOKENS,
            **kwargs,
        }
        if system:
            params["system"] = system

        try:
            response = await self._client.messages.create(**params)
        except anthropic.APIStatusError as e:
            raise UpstreamError(f"anthropic request failed: {e}", status=e.status_code, provider=self.name) from e
        except anthropic.APIError as e:
            raise UpstreamError(f"anthropic request failed: {e}", provider=self.name) from e

        text = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")
        usage = None
        if response.usage:
            usage = TokenUsage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
            )

        return LLMResponse(
            content=text,
            model=model_to_use,
            provider=self.name,
            finish_reason=response.stop_reason,
            usage=usage,
        )

    async def close(self) -> None:
        await self._client.close()
