"""Credential model shared by the auth collaborator and the credential store."""

from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current time; the default clock across the pipeline."""
    return datetime.now(timezone.utc)


class Credential(BaseModel):
    """Bearer access/refresh token pair."""

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(description="Bearer token attached to outbound calls")
    refresh_token: str = Field(description="Token exchanged for a new access token")
    expires_at: datetime = Field(description="Absolute expiry of the access token (UTC)")

    def is_fresh(self, now: datetime, skew: timedelta = timedelta(0)) -> bool:
        """True while the access token is usable for at least `skew` longer."""
        return now < self.expires_at - skew

    @property
    def authorization(self) -> str:
        return f"Bearer {self.access_token}"

    @classmethod
    def from_token_payload(cls, payload: dict[str, Any], now: datetime | None = None) -> "Credential":
        """Build a credential from a GoTrue-style token response.

        Prefers the absolute `expires_at` (unix seconds); falls back to
        `expires_in` relative to `now`.
        """
        if payload.get("expires_at") is not None:
            expires_at = datetime.fromtimestamp(int(payload["expires_at"]), tz=timezone.utc)
        else:
            expires_at = (now or utcnow()) + timedelta(seconds=int(payload.get("expires_in", 3600)))

        return cls(
            access_token=payload["access_token"],
            refresh_token=payload["refresh_token"],
            expires_at=expires_at,
        )
