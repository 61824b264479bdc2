"""HTTP surface for content generation."""

from .app import create_app
from .persistence import (
    ContentRecord,
    ContentRepository,
    ContentType,
    InMemoryContentRepository,
    PostgrestContentRepository,
    detect_content_type,
)
from .security import (
    GoTrueTokenVerifier,
    InMemoryKeyVault,
    InvalidTokenError,
    KeyVault,
    PostgrestKeyVault,
    TokenVerifier,
)

__all__ = [
    "ContentRecord",
    "ContentRepository",
    "ContentType",
    "GoTrueTokenVerifier",
    "InMemoryContentRepository",
    "InMemoryKeyVault",
    "InvalidTokenError",
    "KeyVault",
    "PostgrestContentRepository",
    "PostgrestKeyVault",
    "TokenVerifier",
    "create_app",
    "detect_content_type",
]
