"""Server-side dispatch of a generation request to a model backend.

Routing rule:
- Resolve the model to its provider; unknown models and user-keyed
  providers without a key are rejected before any upstream call.
- If the default provider blocks the prompt on safety grounds, the
  fallback provider answers instead and `model_used` says so.
- Every other failure surfaces as UpstreamError.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..config import DEFAULT_PROVIDER, FALLBACK_MODEL, FALLBACK_PROVIDER
from ..errors import SafetyBlockedError, UnavailableError, UpstreamError
from ..llm import LLMProvider, create_llm_provider
from .catalog import ModelCatalog, ProviderDescriptor

logger = logging.getLogger(__name__)

ProviderFactory = Callable[..., LLMProvider]

UNAVAILABLE_MESSAGE = (
    "Only Gemini and Groq models are available by default. For other models like "
    "GPT-4 or Claude, please add your API key in settings."
)


class RoutedGeneration(BaseModel):
    """Result of one routed generation."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Generated text")
    requested_model: str = Field(description="Model the caller asked for")
    model_used: str = Field(description="Model that actually produced the content")

    @property
    def fallback_used(self) -> bool:
        return self.model_used != self.requested_model


class ProviderRouter:
    """Selects a provider per request and applies safety fallback.

    Args:
        catalog: Model to provider lookup
        providers: Server-keyed provider instances by provider name
        default_provider: Provider whose safety blocks trigger fallback
        fallback_provider: Provider used when the default one blocks
        fallback_model: Model requested from the fallback provider
        provider_factory: Builds providers from a caller-held key
    """

    def __init__(
        self,
        catalog: ModelCatalog,
        providers: Mapping[str, LLMProvider],
        default_provider: str = DEFAULT_PROVIDER,
        fallback_provider: str = FALLBACK_PROVIDER,
        fallback_model: str = FALLBACK_MODEL,
        provider_factory: ProviderFactory = create_llm_provider,
    ):
        self._catalog = catalog
        self._providers = dict(providers)
        self._default_provider = default_provider
        self._fallback_provider = fallback_provider
        self._fallback_model = fallback_model
        self._provider_factory = provider_factory

    @property
    def catalog(self) -> ModelCatalog:
        return self._catalog

    def server_key_providers(self) -> set[str]:
        """Provider names the server can call with its own credentials."""
        return set(self._providers)

    async def generate(
        self,
        prompt: str,
        model_id: str,
        user_keys: Mapping[str, str] | None = None,
    ) -> RoutedGeneration:
        """Generate content for `prompt` with `model_id`.

        Args:
            prompt: User prompt, sent as a single user message
            model_id: Requested model
            user_keys: Caller-held API keys by provider name

        Raises:
            UnavailableError: Unknown model, or a required key is missing
            UpstreamError: Provider failure other than a safety block
        """
        descriptor = self._catalog.provider_for_model(model_id)
        if descriptor is None:
            raise UnavailableError(model_id, f"Unknown model: {model_id}")

        keys = {name.lower(): key for name, key in (user_keys or {}).items() if key}
        provider, owned = self._resolve_provider(descriptor, model_id, keys)

        logger.info("Routing %s to %s", model_id, descriptor.name)
        try:
            content = await self._complete(provider, prompt, model_id)
            return RoutedGeneration(content=content, requested_model=model_id, model_used=model_id)
        except SafetyBlockedError as e:
            if descriptor.name != self._default_provider:
                raise UpstreamError(str(e), status=422, provider=descriptor.name) from e
            logger.warning(
                "%s generation failed, falling back to %s: %s",
                descriptor.name, self._fallback_provider, e,
            )
            content = await self._complete_fallback(prompt)
            return RoutedGeneration(
                content=content, requested_model=model_id, model_used=self._fallback_model
            )
        finally:
            if owned:
                await provider.close()

    def _resolve_provider(
        self,
        descriptor: ProviderDescriptor,
        model_id: str,
        keys: dict[str, str],
    ) -> tuple[LLMProvider, bool]:
        """Return (provider, owned); owned providers are closed after the call."""
        server_provider = self._providers.get(descriptor.name)
        if server_provider is not None and not descriptor.requires_user_key:
            return server_provider, False

        key = keys.get(descriptor.name)
        if not key:
            logger.info("Rejecting %s: no %s key for caller", model_id, descriptor.name)
            raise UnavailableError(model_id, UNAVAILABLE_MESSAGE)

        return self._provider_factory(descriptor.name, api_key=key, model=model_id), True

    async def _complete(self, provider: LLMProvider, prompt: str, model: str) -> str:
        response = await provider.complete(prompt, model=model)
        if not response.content:
            raise UpstreamError(
                f"Failed to generate content: No content was returned from {model}",
                provider=provider.name,
            )
        return response.content

    async def _complete_fallback(self, prompt: str) -> str:
        fallback = self._providers.get(self._fallback_provider)
        if fallback is None:
            raise UpstreamError(
                "Content was blocked by safety filters and no fallback provider is configured",
                status=422,
                provider=self._default_provider,
            )
        try:
            return await self._complete(fallback, prompt, self._fallback_model)
        except SafetyBlockedError as e:
            raise UpstreamError(str(e), status=422, provider=self._fallback_provider) from e

    async def close(self) -> None:
        """Close the server-keyed providers."""
        for provider in self._providers.values():
            await provider.close()

    async def __aenter__(self) -> "ProviderRouter":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
