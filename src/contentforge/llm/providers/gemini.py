"""Google Gemini provider, the default model backend.

Uses the Google GenAI SDK.
Reference: https://github.com/googleapis/python-genai

Gemini withholds content in two ways: a blocked prompt (prompt_feedback)
and a candidate stopped by a filter (finish_reason). Both raise
SafetyBlockedError so the router can fall back. A plain empty response is
retried a few times before being returned as-is.
"""

import asyncio
import logging
from typing import Any

from google import genai
from google.genai import errors, types

from ...errors import SafetyBlockedError, UpstreamError
from ..base import LLMProvider
from ..models import ChatMessage, LLMResponse, TokenUsage

logger = logging.getLogger(__name__)

# Relaxed so ordinary marketing copy is not refused
DEFAULT_SAFETY_SETTINGS = [
    types.SafetySetting(category=category, threshold="BLOCK_ONLY_HIGH")
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]

# Finish reasons that mean the candidate was withheld by a content filter
SAFETY_FINISH_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"}


def _reason_name(reason: Any) -> str:
    return getattr(reason, "name", None) or str(reason)


def safety_block_reason(response: Any) -> str | None:
    """Return the block reason if the response was withheld for safety."""
    feedback = getattr(response, "prompt_feedback", None)
    if feedback is not None and feedback.block_reason:
        return _reason_name(feedback.block_reason)

    for candidate in response.candidates or []:
        if candidate.finish_reason is not None:
            name = _reason_name(candidate.finish_reason)
            if name in SAFETY_FINISH_REASONS:
                return name
    return None


def is_safety_error(error: Exception) -> bool:
    """True if an API error reports a safety block (upper-case SAFETY marker only)."""
    return "SAFETY" in str(error)


def to_gemini_contents(messages: list[ChatMessage]) -> tuple[str | None, list[types.Content]]:
    """Split messages into (system_instruction, contents); assistant turns become 'model'."""
    system = "\n\n".join(m.content for m in messages if m.role == "system") or None
    contents = [
        types.Content(role="model" if m.role == "assistant" else "user", parts=[types.Part(text=m.content)])
        for m in messages
        if m.role != "system"
    ]
    return system, contents


def extract_text(response: Any) -> str:
    """Concatenate the text parts of the first candidate."""
    if not response.candidates:
        return ""
    content = response.candidates[0].content
    if content is None or not content.parts:
        return ""
    return "".join(part.text for part in content.parts if getattr(part, "text", None))


class GeminiProvider(LLMProvider):
    """Gemini models, served with the deployment's own key."""

    name = "google"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-pro",
        max_retries: int = 3,
        **client_kwargs: Any
    ):
        """
        Args:
            api_key: Google AI API key
            model: Default model id
            max_retries: Attempts for empty (not blocked) responses
            **client_kwargs: Passed to genai.Client
        """
        self._model = model
        self._max_retries = max_retries
        self._client = genai.Client(api_key=api_key, **client_kwargs)

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
        system, contents = to_gemini_contents(messages)
        config = types.GenerateContentConfig(
            temperature=temperature,
            system_instruction=system,
            safety_settings=DEFAULT_SAFETY_SETTINGS,
            max_output_tokens=max_tokens,
            **kwargs
        )

        text = ""
        finish_reason = None
        usage = None
        for attempt in range(self._max_retries):
            try:
                response = await self._client.aio.models.generate_content(
                    model=model_to_use, contents=contents, config=config
                )
            except errors.APIError as e:
                if is_safety_error(e):
                    raise SafetyBlockedError(str(e), provider=self.name) from e
                raise UpstreamError(f"gemini request failed: {e}", status=e.code, provider=self.name) from e

            reason = safety_block_reason(response)
            if reason is not None:
                raise SafetyBlockedError(f"response blocked ({reason})", provider=self.name)

            if response.usage_metadata:
                usage = TokenUsage(
                    prompt_tokens=response.usage_metadata.prompt_token_count or 0,
                    completion_tokens=response.usage_metadata.candidates_token_count or 0,
                )
            if response.candidates and response.candidates[0].finish_reason is not None:
                finish_reason = _reason_name(response.candidates[0].finish_reason)

            text = extract_text(response)
            if text:
                break
            if attempt < self._max_retries - 1:
                logger.debug("Empty Gemini response, retrying (attempt %d)", attempt + 1)
                await asyncio.sleep(0.5 * (attempt + 1))

        return LLMResponse(
            content=text,
            model=model_to_use,
            provider=self.name,
            finish_reason=finish_reason,
            usage=usage,
        )

    async def close(self) -> None:
        # genai.Client holds no connection that needs closing
        pass
