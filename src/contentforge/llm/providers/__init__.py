from .anthropic import AnthropicProvider
from .deepseek import DeepSeekProvider
from .gemini import GeminiProvider
from .groq import GroqProvider
from .openai import OpenAIProvider

__all__ = ["AnthropicProvider", "DeepSeekProvider", "GeminiProvider", "GroqProvider", "OpenAIProvider"]
