"""Generation turns: prompt enrichment, task classification and follow-up calls."""

from .client import GenerationClient, error_message
from .models import (
    ChatReply,
    ContentUpdated,
    ErrorBody,
    ErrorOutcome,
    GenerationRequest,
    GenerationResponse,
    GenerationResult,
    OrchestrationOutcome,
    TaskType,
    parse_task_response,
)
from .orchestrator import GenerationOrchestrator
from .prompts import build_acknowledgment_prompt, build_enriched_prompt

__all__ = [
    "ChatReply",
    "ContentUpdated",
    "ErrorBody",
    "ErrorOutcome",
    "GenerationClient",
    "GenerationOrchestrator",
    "GenerationRequest",
    "GenerationResponse",
    "GenerationResult",
    "OrchestrationOutcome",
    "TaskType",
    "build_acknowledgment_prompt",
    "build_enriched_prompt",
    "error_message",
    "parse_task_response",
]
