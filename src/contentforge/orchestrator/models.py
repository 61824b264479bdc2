"""Wire and outcome models for generation turns."""

import re
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ErrorKind


class TaskType(str, Enum):
    """Action the model chose for a turn, parsed from its first line."""

    GENERATE = "GENERATE"
    CHAT = "CHAT"
    EDIT = "EDIT"


class GenerationRequest(BaseModel):
    """Body of POST /api/generate."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    prompt: str = Field(min_length=1)
    model_id: str = Field(alias="model")
    save_flag: bool = Field(default=False, alias="saveContent")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class GenerationResponse(BaseModel):
    """Successful response of POST /api/generate."""

    content: str
    model: str
    message: str | None = None


class ErrorBody(BaseModel):
    """Non-2xx response body of the HTTP surface."""

    message: str
    error: str = "GeneralError"
    details: str | None = None


class GenerationResult(BaseModel):
    """A model response split into its task type and body."""

    model_config = ConfigDict(frozen=True)

    task_type: TaskType
    body: str
    model_used: str


# First line contract; brackets are tolerated because the prompt shows them
TASK_TYPE_PATTERN = re.compile(r"^\s*TASK_TYPE:\s*\[?\s*(GENERATE|CHAT|EDIT)\s*\]?\s*$")


def parse_task_response(text: str, model_used: str) -> GenerationResult:
    """Split `text` on its first line marker.

    A missing or unrecognized marker yields CHAT with the whole text as body.
    """
    first_line, _, rest = text.partition("\n")
    match = TASK_TYPE_PATTERN.match(first_line)
    if match is None:
        return GenerationResult(task_type=TaskType.CHAT, body=text.strip(), model_used=model_used)
    return GenerationResult(task_type=TaskType(match.group(1)), body=rest.strip(), model_used=model_used)


class ContentUpdated(BaseModel):
    """GENERATE or EDIT turn: the document changed and the model acknowledged it."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["content_updated"] = "content_updated"
    task_type: TaskType
    content: str = Field(description="New document content")
    reply: str = Field(description="Conversational acknowledgment shown in chat")
    requested_model: str
    model_used: str
    notice: str | None = Field(default=None, description="Server notice, e.g. fallback substitution")

    @property
    def fallback_used(self) -> bool:
        return self.model_used != self.requested_model


class ChatReply(BaseModel):
    """CHAT turn: a reply only, the document is untouched."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["chat_reply"] = "chat_reply"
    reply: str
    requested_model: str
    model_used: str
    notice: str | None = None

    @property
    def fallback_used(self) -> bool:
        return self.model_used != self.requested_model


class ErrorOutcome(BaseModel):
    """The turn failed; `message` was also appended to the chat."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["error"] = "error"
    kind: ErrorKind
    message: str


OrchestrationOutcome = ContentUpdated | ChatReply | ErrorOutcome
