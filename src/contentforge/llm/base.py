from abc import ABC, abstractmethod
from typing import Any

from .models import ChatMessage, LLMResponse


class LLMProvider(ABC):
    """A model backend the router can send prompts to.

    Implementations hide:
    - SDK client setup and authentication
    - Message format conversion
    - Translating SDK failures into UpstreamError, and content-filter
      refusals into SafetyBlockedError

    Providers own network clients and support `async with`:
        async with create_llm_provider("groq", api_key=key) as provider:
            response = await provider.complete("write a blog post about cats")
    """

    name: str = "provider"

    @abstractmethod
    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Generate a completion for `messages`.

        Args:
            messages: Conversation to complete
            model: Catalog model id (None uses the provider default)
            temperature: Sampling temperature
            max_tokens: Completion length limit
            **kwargs: Provider-specific parameters

        Raises:
            SafetyBlockedError: The provider refused the prompt on safety grounds
            UpstreamError: Any other provider failure
        """

    async def complete(self, prompt: str, model: str | None = None, **kwargs: Any) -> LLMResponse:
        """Single-prompt completion, the shape every generation request takes."""
        return await self.chat_completion([ChatMessage.user(prompt)], model=model, **kwargs)

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying client."""

    async def __aenter__(self) -> "LLMProvider":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        # httpx can report a closed loop during interpreter shutdown
        # https://github.com/encode/httpx/issues/914
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
