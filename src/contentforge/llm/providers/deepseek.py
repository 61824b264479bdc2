"""DeepSeek provider over its OpenAI-compatible endpoint."""

from .openai import OpenAICompatibleProvider


class DeepSeekProvider(OpenAICompatibleProvider):
    """DeepSeek chat and coder models (caller-keyed)."""

    name = "deepseek"
    default_model = "deepseek-chat"
    default_base_url = "https://api.deepseek.com"
