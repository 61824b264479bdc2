import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..config import BACKOFF_BASE_MS, BACKOFF_MAX_MS, MAX_RETRIES, REQUEST_TIMEOUT_SECONDS


class RetryPolicy(BaseModel):
    """Timeout and retry budget for one outbound call."""

    model_config = ConfigDict(frozen=True)

    timeout: float = Field(default=REQUEST_TIMEOUT_SECONDS, gt=0, description="Per-attempt timeout in seconds")
    max_retries: int = Field(default=MAX_RETRIES, ge=0, description="Retries after the initial attempt")
    backoff_base_ms: int = Field(default=BACKOFF_BASE_MS, ge=0)
    backoff_max_ms: int = Field(default=BACKOFF_MAX_MS, ge=0)

    def backoff_ms(self, attempt: int) -> int:
        """Delay before retrying after attempt index `attempt` (0-based)."""
        return min(self.backoff_base_ms * 2 ** attempt, self.backoff_max_ms)

    def backoff_delay(self, attempt: int) -> float:
        """Same as backoff_ms, in seconds."""
        return self.backoff_ms(attempt) / 1000


class ApiRequest(BaseModel):
    """An outbound HTTP call, before credentials are attached."""

    model_config = ConfigDict(frozen=True)

    method: str = Field(description="HTTP method")
    path: str = Field(description="Path relative to the API base URL")
    json_body: dict[str, Any] | None = Field(default=None, description="JSON payload")
    headers: dict[str, str] = Field(default_factory=dict)


class ApiResponse(BaseModel):
    """A completed HTTP exchange."""

    model_config = ConfigDict(frozen=True)

    status: int
    body: str = ""
    headers: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.body)
