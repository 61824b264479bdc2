"""Single owner of the current credential.

Every outbound caller asks the store for a valid credential instead of
reading ambient auth state. The store refreshes lazily and coalesces
concurrent refreshes into one call to the auth collaborator. Once a refresh
is rejected (or the user signs out) the store stays signed out, without
touching the collaborator, until a new session arrives.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from ..config import CREDENTIAL_EXPIRY_SKEW
from ..errors import UnauthenticatedError
from .base import AuthClient, AuthRefreshError
from .models import Credential, utcnow

logger = logging.getLogger(__name__)


class CredentialStore:
    """Caches the credential and serializes refreshes.

    Lifecycle:
        store = CredentialStore(auth_client)
        credential = await store.get_valid_credential()
        ...
        store.close()  # unsubscribes from auth state changes
    """

    def __init__(
        self,
        auth: AuthClient,
        skew: timedelta = CREDENTIAL_EXPIRY_SKEW,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._auth = auth
        self._skew = skew
        self._clock = clock
        self._credential: Credential | None = None
        self._refresh_task: asyncio.Task[Credential] | None = None
        self._signed_out = False
        self._unsubscribe = auth.on_auth_state_change(self._on_auth_state_change)

    @property
    def credential(self) -> Credential | None:
        """The cached credential (may be stale)."""
        return self._credential

    async def get_valid_credential(self) -> Credential:
        """Return a credential that is fresh for at least the configured skew.

        Raises:
            UnauthenticatedError: If no session exists and refresh is rejected
        """
        if self._credential is None and self._refresh_task is None and not self._signed_out:
            session = await self._auth.get_session()
            if session is not None and self._credential is None:
                self._credential = session

        credential = self._credential
        if credential is not None and credential.is_fresh(self._clock(), self._skew):
            return credential

        return await self._refresh()

    async def force_refresh(self, stale: Credential | None = None) -> Credential:
        """Refresh after the server rejected `stale`.

        If the cached credential already moved past `stale` (another caller
        refreshed first), the newer credential is returned without a second
        refresh.
        """
        current = self._credential
        if stale is not None and current is not None and current.access_token != stale.access_token:
            return current
        return await self._refresh()

    @property
    def signed_out(self) -> bool:
        """True after a rejected refresh or sign-out, until a new session arrives."""
        return self._signed_out

    async def _refresh(self) -> Credential:
        if self._signed_out:
            raise UnauthenticatedError("Session expired. Please sign in again.")
        if self._refresh_task is None:
            self._refresh_task = asyncio.ensure_future(self._run_refresh())
        # A cancelled waiter must not cancel the refresh other waiters share
        return await asyncio.shield(self._refresh_task)

    async def _run_refresh(self) -> Credential:
        try:
            logger.debug("Refreshing credential")
            try:
                credential = await self._auth.refresh_session()
            except AuthRefreshError as e:
                self._credential = None
                if e.rejected:
                    self._signed_out = True
                logger.warning("Credential refresh rejected: %s", e)
                raise UnauthenticatedError("Session expired. Please sign in again.") from e

            self._credential = credential
            logger.debug("Credential refreshed, expires at %s", credential.expires_at.isoformat())
            return credential
        finally:
            self._refresh_task = None

    def _on_auth_state_change(self, event: str, session: Credential | None) -> None:
        logger.debug("Auth state changed: %s", event)
        self._credential = session
        if session is not None:
            self._signed_out = False
        elif event == "SIGNED_OUT":
            self._signed_out = True

    def close(self) -> None:
        """Stop listening to auth state changes."""
        self._unsubscribe()
