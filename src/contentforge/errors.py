"""Typed failures for the request pipeline.

Every failure that can end a generation turn is a PipelineError subclass
carrying an ErrorKind. The executor and the router raise these; the
orchestrator is the only place that turns them into user-visible values.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers."""

    UNAUTHENTICATED = "unauthenticated"
    TIMEOUT = "timeout"
    EXHAUSTED_RETRIES = "exhausted_retries"
    NON_RETRYABLE = "non_retryable"
    UNAVAILABLE = "unavailable"
    UPSTREAM = "upstream"


class PipelineError(Exception):
    """Base class for pipeline errors."""

    kind: ErrorKind = ErrorKind.UPSTREAM

    def is_retryable(self) -> bool:
        """Override in subclasses to control retry behavior."""
        return False


class UnauthenticatedError(PipelineError):
    """Credential refresh was rejected; the user must sign in again."""

    kind = ErrorKind.UNAUTHENTICATED

    def __init__(self, message: str = "Authentication required. Please sign in."):
        super().__init__(message)


class RequestTimeoutError(PipelineError):
    """A single attempt exceeded its deadline (never retried)."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, timeout: float, method: str = "", path: str = ""):
        super().__init__(f"Request timeout after {int(timeout * 1000)}ms")
        self.timeout = timeout
        self.method = method
        self.path = path


class ExhaustedRetriesError(PipelineError):
    """A retryable status kept coming back past the retry budget."""

    kind = ErrorKind.EXHAUSTED_RETRIES

    def __init__(self, status: int | None, body: str = "", attempts: int = 0):
        label = status if status is not None else "network error"
        super().__init__(f"{label}: {body or 'retries exhausted'}")
        self.status = status
        self.body = body
        self.attempts = attempts


class NonRetryableError(PipelineError):
    """A non-2xx status that is not worth retrying (4xx other than 401)."""

    kind = ErrorKind.NON_RETRYABLE

    def __init__(self, status: int, body: str = ""):
        super().__init__(f"{status}: {body}")
        self.status = status
        self.body = body


class UnavailableError(PipelineError):
    """The requested model is unknown or its provider needs a key the caller lacks."""

    kind = ErrorKind.UNAVAILABLE

    def __init__(self, model_id: str, reason: str):
        super().__init__(reason)
        self.model_id = model_id


class UpstreamError(PipelineError):
    """Provider-side failure not caused by a safety classification."""

    kind = ErrorKind.UPSTREAM

    def __init__(self, message: str, status: int | None = None, provider: str | None = None):
        super().__init__(message)
        self.status = status
        self.provider = provider

    def is_retryable(self) -> bool:
        return self.status is None or self.status >= 500


class SafetyBlockedError(PipelineError):
    """The provider refused the prompt on safety grounds.

    Raised by providers and consumed by the router, which substitutes the
    fallback provider. It never reaches the executor's retry logic.
    """

    kind = ErrorKind.UPSTREAM

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(f"SAFETY: {message}")
        self.provider = provider
