"""Client for the POST /api/generate surface."""

from pydantic import ValidationError

from ..config import GENERATE_PATH
from ..errors import ExhaustedRetriesError, NonRetryableError, PipelineError
from ..transport import ApiRequest, ResilientExecutor
from .models import ErrorBody, GenerationRequest, GenerationResponse


class GenerationClient:
    """Submits generation requests through the resilient executor."""

    def __init__(self, executor: ResilientExecutor, path: str = GENERATE_PATH):
        self._executor = executor
        self._path = path

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """POST `request` and parse the response.

        Raises:
            NonRetryableError: Non-2xx response or a malformed success body
            PipelineError: Whatever the executor raised
        """
        response = await self._executor.execute(
            ApiRequest(method="POST", path=self._path, json_body=request.to_payload())
        )
        try:
            return GenerationResponse.model_validate_json(response.body)
        except ValidationError as e:
            raise NonRetryableError(response.status, f"Malformed generate response: {e}") from e


def error_message(error: PipelineError) -> str:
    """User-facing text for `error`, preferring the server's own message."""
    if isinstance(error, (NonRetryableError, ExhaustedRetriesError)) and error.body:
        try:
            return ErrorBody.model_validate_json(error.body).message
        except ValidationError:
            return str(error)
    return str(error) or "Failed to process your request. Please try again."
