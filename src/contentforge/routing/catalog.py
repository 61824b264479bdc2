"""Static model catalog and per-caller availability.

A model is available to a caller iff its provider does not require a
user key, or the caller holds a stored key for that provider.
"""

from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field

from ..config import DEFAULT_MODEL


class ProviderDescriptor(BaseModel):
    """An upstream model backend and the models it serves."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Provider identifier, matches the LLM factory and key vault")
    label: str = Field(description="Human-readable provider name")
    supported_models: frozenset[str] = Field(description="Model ids served by this provider")
    requires_user_key: bool = Field(description="Whether callers must bring their own API key")
    description: str = ""


DEFAULT_PROVIDERS: tuple[ProviderDescriptor, ...] = (
    ProviderDescriptor(
        name="google",
        label="Google",
        supported_models=frozenset({"gemini-pro", "gemini-pro-vision"}),
        requires_user_key=False,
        description="Default AI model powered by Google's Gemini",
    ),
    ProviderDescriptor(
        name="groq",
        label="Groq",
        supported_models=frozenset({
            "llama-3.1-sonar-small-128k-online",
            "llama-3.1-sonar-large-128k-online",
            "llama-3.1-sonar-huge-128k-online",
        }),
        requires_user_key=False,
        description="High-performance Llama models by Groq",
    ),
    ProviderDescriptor(
        name="openai",
        label="OpenAI",
        supported_models=frozenset({"gpt-4-turbo-preview", "gpt-4", "gpt-3.5-turbo"}),
        requires_user_key=True,
        description="Requires your own OpenAI API key",
    ),
    ProviderDescriptor(
        name="anthropic",
        label="Anthropic",
        supported_models=frozenset({"claude-3-opus", "claude-3-sonnet", "claude-3-haiku"}),
        requires_user_key=True,
        description="Requires your own Anthropic API key",
    ),
    ProviderDescriptor(
        name="deepseek",
        label="DeepSeek",
        supported_models=frozenset({"deepseek-chat", "deepseek-coder"}),
        requires_user_key=True,
        description="Requires your own DeepSeek API key",
    ),
)


class ModelCatalog:
    """Lookup from model id to provider (many-to-one)."""

    def __init__(self, providers: Iterable[ProviderDescriptor] = DEFAULT_PROVIDERS):
        self._providers = tuple(providers)
        self._by_model: dict[str, ProviderDescriptor] = {}
        for descriptor in self._providers:
            for model_id in descriptor.supported_models:
                if model_id in self._by_model:
                    raise ValueError(f"Model {model_id} is served by more than one provider")
                self._by_model[model_id] = descriptor

    def __iter__(self) -> Iterator[ProviderDescriptor]:
        return iter(self._providers)

    def provider_for_model(self, model_id: str) -> ProviderDescriptor | None:
        return self._by_model.get(model_id)

    def is_model_available(self, model_id: str, user_key_providers: Iterable[str] = ()) -> bool:
        descriptor = self.provider_for_model(model_id)
        if descriptor is None:
            return False
        if not descriptor.requires_user_key:
            return True
        return descriptor.name in {p.lower() for p in user_key_providers}

    def available_providers(self, user_key_providers: Iterable[str] = ()) -> list[ProviderDescriptor]:
        keys = {p.lower() for p in user_key_providers}
        return [d for d in self._providers if not d.requires_user_key or d.name in keys]

    def resolve_model(
        self,
        model_id: str,
        user_key_providers: Iterable[str] = (),
        default: str = DEFAULT_MODEL,
    ) -> str:
        """Return `model_id` if the caller may use it, otherwise the default model."""
        if self.is_model_available(model_id, user_key_providers):
            return model_id
        return default
