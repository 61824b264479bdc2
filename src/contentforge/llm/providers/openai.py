"""OpenAI and OpenAI-compatible chat providers.

OpenAI, DeepSeek and Groq all speak the Chat Completions protocol, so they
share one implementation over the official SDK and differ only in endpoint,
default model and message preparation.
Reference: https://github.com/openai/openai-python
"""

from typing import Any

import openai
from openai import AsyncOpenAI

from ...errors import UpstreamError
from ..base import LLMProvider
from ..models import ChatMessage, LLMResponse, TokenUsage


def translate_openai_error(error: openai.OpenAIError, provider: str) -> UpstreamError:
    """Map an SDK exception to UpstreamError.

    Connection problems carry no status and therefore stay retryable.
    """
    status = error.status_code if isinstance(error, openai.APIStatusError) else None
    return UpstreamError(f"{provider} request failed: {error}", status=status, provider=provider)


class OpenAICompatibleProvider(LLMProvider):
    """Chat Completions provider; subclasses set the endpoint and defaults."""

    name = "openai"
    default_model = "gpt-4-turbo-preview"
    default_base_url: str | None = None

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        base_url: str | None = None,
        **client_kwargs: Any
    ):
        """
        Args:
            api_key: Provider API key
            model: Default catalog model id
            base_url: Override the provider endpoint
            **client_kwargs: Passed to AsyncOpenAI (http_client, max_retries, ...)
        """
        self._model = model or self.default_model
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or self.default_base_url,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        return self._model

    def _prepare_messages(self, messages: list[ChatMessage]) -> list[dict[str, str]]:
        return [{"role": msg.role, "content": msg.content} for msg in messages]

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        model_to_use = model or self._model

        try:
            completion = await self._client.chat.completions.create(
                model=model_to_use,
                messages=self._prepare_messages(messages),
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs
            )
        except openai.OpenAIError as e:
            raise translate_openai_error(e, self.name) from e

        usage = None
        if completion.usage:
            usage = TokenUsage(
                prompt_tokens=completion.usage.prompt_tokens,
                completion_tokens=completion.usage.completion_tokens,
            )

        choice = completion.choices[0] if completion.choices else None
        return LLMResponse(
            content=(choice.message.content if choice else None) or "",
            model=model_to_use,
            provider=self.name,
            finish_reason=choice.finish_reason if choice else None,
            usage=usage,
        )

    async def close(self) -> None:
        await self._client.close()


class OpenAIProvider(OpenAICompatibleProvider):
    """OpenAI models; only reachable with the caller's own key."""

    def __init__(self, api_key: str, model: str | None = None, organization: str | None = None, **kwargs: Any):
        super().__init__(api_key, model=model, organization=organization, **kwargs)
