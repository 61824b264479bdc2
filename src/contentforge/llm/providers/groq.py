"""Groq provider, the safety fallback for Gemini.

Groq serves Llama models behind an OpenAI-compatible endpoint.
Reference: https://console.groq.com/docs/openai
"""

from typing import Any

from ..models import ChatMessage
from .openai import OpenAICompatibleProvider

# Prepended when the caller sends no system message
SYSTEM_PROMPT = "Generate content that is SEO-optimized and human-like. Keep the content professional and safe."


class GroqProvider(OpenAICompatibleProvider):
    """Llama models on Groq with a fixed content-writing system prompt."""

    name = "groq"
    default_model = "llama-3.1-sonar-large-128k-online"
    default_base_url = "https://api.groq.com/openai/v1"

    def __init__(self, api_key: str, model: str | None = None, system_prompt: str = SYSTEM_PROMPT, **kwargs: Any):
        super().__init__(api_key, model=model, **kwargs)
        self._system_prompt = system_prompt

    def _prepare_messages(self, messages: list[ChatMessage]) -> list[dict[str, str]]:
        prepared = super()._prepare_messages(messages)
        if not any(msg.role == "system" for msg in messages):
            prepared.insert(0, {"role": "system", "content": self._system_prompt})
        return prepared
