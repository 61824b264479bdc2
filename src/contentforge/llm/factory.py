from typing import Any

from .base import LLMProvider
from .providers import AnthropicProvider, DeepSeekProvider, GeminiProvider, GroqProvider, OpenAIProvider

# Provider ids match the model catalog and the key vault; aliases are accepted too
PROVIDER_CLASSES: dict[str, type[LLMProvider]] = {
    "google": GeminiProvider,
    "gemini": GeminiProvider,
    "groq": GroqProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "claude": AnthropicProvider,
    "deepseek": DeepSeekProvider,
}


def create_llm_provider(provider: str, **config: Any) -> LLMProvider:
    """Create an LLM provider instance.

    Args:
        provider: Provider id ('google', 'groq', 'openai', 'anthropic', 'deepseek')
            or alias ('gemini', 'claude'), case-insensitive
        **config: Provider configuration; `api_key` is required, `model`
            sets the default model, the rest goes to the provider's SDK client

    Raises:
        ValueError: If the provider is not supported
        TypeError: If `api_key` is missing

    Examples:
        >>> provider = create_llm_provider("google", api_key="...", model="gemini-pro")
        >>> provider = create_llm_provider("anthropic", api_key=user_key, model="claude-3-haiku")
    """
    cls = PROVIDER_CLASSES.get(provider.lower())
    if cls is None:
        raise ValueError(
            f"Unsupported provider: {provider}. "
            f"Supported providers: 'google', 'groq', 'openai', 'anthropic', 'deepseek'"
        )
    if not config.get("api_key"):
        raise TypeError(f"{cls.__name__} requires 'api_key' in config")
    return cls(**config)
