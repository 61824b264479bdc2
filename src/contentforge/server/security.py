"""Caller identity and caller-held provider keys."""

from abc import ABC, abstractmethod

import httpx


class InvalidTokenError(Exception):
    """The bearer token is missing, malformed, expired or unknown."""


class TokenVerifier(ABC):
    """Resolves a bearer token to a user id."""

    @abstractmethod
    async def verify(self, token: str) -> str:
        """Return the user id for `token`.

        Raises:
            InvalidTokenError: If the token is not accepted
        """


class GoTrueTokenVerifier(TokenVerifier):
    """Verifies tokens against a GoTrue `/user` endpoint."""

    def __init__(self, url: str, api_key: str, client: httpx.AsyncClient | None = None):
        self._client = client or httpx.AsyncClient(base_url=url.rstrip("/"), timeout=10.0)
        self._api_key = api_key

    async def verify(self, token: str) -> str:
        try:
            response = await self._client.get(
                "/user", headers={"apikey": self._api_key, "Authorization": f"Bearer {token}"}
            )
        except httpx.HTTPError as e:
            raise InvalidTokenError(f"Could not validate token: {e}") from e

        if response.status_code != 200:
            raise InvalidTokenError("Invalid or expired token")

        user_id = response.json().get("id")
        if not user_id:
            raise InvalidTokenError("Invalid or expired token")
        return user_id

    async def close(self) -> None:
        await self._client.aclose()


class KeyVault(ABC):
    """Provider API keys stored by users in their settings."""

    @abstractmethod
    async def get_keys(self, user_id: str) -> dict[str, str]:
        """Return `{provider_name: api_key}` for `user_id`."""


class InMemoryKeyVault(KeyVault):
    def __init__(self, keys: dict[str, dict[str, str]] | None = None):
        self._keys = {user: dict(k) for user, k in (keys or {}).items()}

    async def get_keys(self, user_id: str) -> dict[str, str]:
        return dict(self._keys.get(user_id, {}))

    def set_key(self, user_id: str, provider: str, api_key: str) -> None:
        self._keys.setdefault(user_id, {})[provider.lower()] = api_key


class PostgrestKeyVault(KeyVault):
    """Reads the PostgREST (Supabase) `api_keys` table."""

    def __init__(self, url: str, api_key: str, table: str = "api_keys", client: httpx.AsyncClient | None = None):
        self._table = table
        self._client = client or httpx.AsyncClient(
            base_url=url.rstrip("/"),
            headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
            timeout=10.0,
        )

    async def get_keys(self, user_id: str) -> dict[str, str]:
        response = await self._client.get(
            f"/rest/v1/{self._table}",
            params={"user_id": f"eq.{user_id}", "select": "provider,key"},
        )
        response.raise_for_status()
        return {row["provider"].lower(): row["key"] for row in response.json()}

    async def close(self) -> None:
        await self._client.aclose()
