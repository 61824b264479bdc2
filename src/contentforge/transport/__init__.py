"""Resilient outbound HTTP execution."""

from .executor import AttemptState, ResilientExecutor
from .models import ApiRequest, ApiResponse, RetryPolicy

__all__ = [
    "ApiRequest",
    "ApiResponse",
    "AttemptState",
    "ResilientExecutor",
    "RetryPolicy",
]
