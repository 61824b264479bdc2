"""GoTrue (Supabase Auth) collaborator over httpx.

Talks to the `/token` endpoint of a GoTrue-compatible identity service.
Reference: https://github.com/supabase/auth
"""

import logging
from collections.abc import Callable
from typing import Any

import httpx

from .base import AuthClient, AuthRefreshError, AuthStateCallback
from .models import Credential, utcnow

logger = logging.getLogger(__name__)


class GoTrueAuthClient(AuthClient):
    """Session holder backed by a GoTrue `/token` endpoint.

    Hidden design decisions:
    - Token grant request format
    - apikey header handling
    - Event fan-out to subscribers
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        session: Credential | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the auth client.

        Args:
            url: Auth base URL (e.g. https://<project>.supabase.co/auth/v1)
            api_key: Project anon key sent as the `apikey` header
            session: Previously stored session to start from
            client: Optional preconfigured httpx client (tests)
        """
        self._session = session
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=url.rstrip("/"), timeout=30.0)
        self._headers = {"apikey": api_key}
        self._listeners: list[AuthStateCallback] = []

    async def get_session(self) -> Credential | None:
        return self._session

    async def refresh_session(self) -> Credential:
        if self._session is None:
            raise AuthRefreshError("No refresh token available")

        try:
            credential = await self._grant(
                "refresh_token", {"refresh_token": self._session.refresh_token}
            )
        except AuthRefreshError as e:
            if e.rejected:
                logger.info("Refresh token rejected, signing out")
                self._set_session("SIGNED_OUT", None)
            raise
        self._set_session("TOKEN_REFRESHED", credential)
        return credential

    async def sign_in_with_password(self, email: str, password: str) -> Credential:
        """Sign in with email and password and adopt the new session."""
        credential = await self._grant("password", {"email": email, "password": password})
        self._set_session("SIGNED_IN", credential)
        return credential

    async def sign_out(self) -> None:
        self._set_session("SIGNED_OUT", None)

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def _grant(self, grant_type: str, payload: dict[str, Any]) -> Credential:
        try:
            response = await self._client.post(
                "/token",
                params={"grant_type": grant_type},
                json=payload,
                headers=self._headers,
            )
        except httpx.HTTPError as e:
            raise AuthRefreshError(f"Auth service unreachable: {e}", rejected=False) from e

        if response.status_code != 200:
            # 5xx leaves the refresh token usable
            raise AuthRefreshError(
                f"{response.status_code}: {response.text}", rejected=response.status_code < 500
            )

        return Credential.from_token_payload(response.json(), utcnow())

    def _set_session(self, event: str, session: Credential | None) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(event, session)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "GoTrueAuthClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
