from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """One message sent to a provider."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"] = Field(description="Message author")
    content: str = Field(description="Message text")

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role="user", content=content)


class TokenUsage(BaseModel):
    """Token accounting reported by the provider."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class LLMResponse(BaseModel):
    """A completed generation from one provider."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Generated text, empty if the provider returned nothing")
    model: str = Field(description="Catalog model id the completion was requested with")
    provider: str = Field(default="", description="Provider that served the request")
    finish_reason: str | None = Field(default=None, description="Provider stop reason, if reported")
    usage: TokenUsage | None = None
