"""Credential handling for outbound calls."""

from .base import AuthClient, AuthRefreshError, AuthStateCallback
from .gotrue import GoTrueAuthClient
from .models import Credential, utcnow
from .store import CredentialStore

__all__ = [
    "AuthClient",
    "AuthRefreshError",
    "AuthStateCallback",
    "Credential",
    "CredentialStore",
    "GoTrueAuthClient",
    "utcnow",
]
