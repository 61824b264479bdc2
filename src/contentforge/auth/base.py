"""Abstract auth collaborator.

The pipeline depends on exactly three operations of whatever identity
service issues credentials. This module hides:
- Where sessions are stored
- How refresh tokens are exchanged
- How sign-in/sign-out events are delivered
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from .models import Credential

# (event, session) -> None; session is None on sign-out
AuthStateCallback = Callable[[str, Credential | None], None]


class AuthRefreshError(Exception):
    """The identity service rejected a refresh (or could not be reached).

    `rejected` is False when the service was unreachable; the session may
    still be good and a later refresh can be attempted.
    """

    def __init__(self, message: str, rejected: bool = True):
        super().__init__(message)
        self.rejected = rejected


class AuthClient(ABC):
    """Identity service interface consumed by CredentialStore."""

    @abstractmethod
    async def get_session(self) -> Credential | None:
        """Return the current session, if any, without refreshing it."""

    @abstractmethod
    async def refresh_session(self) -> Credential:
        """Exchange the refresh token for a new credential.

        A rejected refresh token is dead: implementations drop the session
        and emit SIGNED_OUT before raising.

        Raises:
            AuthRefreshError: If the refresh is rejected
        """

    @abstractmethod
    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        """Subscribe to session changes. Returns an unsubscribe function."""
