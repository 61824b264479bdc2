"""Model backends behind the provider router."""

from .base import LLMProvider
from .factory import PROVIDER_CLASSES, create_llm_provider
from .models import ChatMessage, LLMResponse, TokenUsage
from .providers import AnthropicProvider, DeepSeekProvider, GeminiProvider, GroqProvider, OpenAIProvider

__all__ = [
    "PROVIDER_CLASSES",
    "AnthropicProvider",
    "ChatMessage",
    "DeepSeekProvider",
    "GeminiProvider",
    "GroqProvider",
    "LLMProvider",
    "LLMResponse",
    "OpenAIProvider",
    "TokenUsage",
    "create_llm_provider",
]
