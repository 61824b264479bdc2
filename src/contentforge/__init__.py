"""
contentforge: a resilient request pipeline for AI content generation.

Turns a user prompt into persisted, model-generated content while tolerating
credential expiry, transient provider failures, safety rejections and
multi-step conversational follow-ups.
"""

__version__ = "0.1.0"

from .auth import Credential, CredentialStore
from .conversation import ConversationWindow, DocumentState, Message
from .errors import ErrorKind, PipelineError
from .orchestrator import GenerationClient, GenerationOrchestrator
from .routing import ModelCatalog, ProviderRouter
from .transport import ResilientExecutor, RetryPolicy

__all__ = [
    "ConversationWindow",
    "Credential",
    "CredentialStore",
    "DocumentState",
    "ErrorKind",
    "GenerationClient",
    "GenerationOrchestrator",
    "Message",
    "ModelCatalog",
    "PipelineError",
    "ProviderRouter",
    "ResilientExecutor",
    "RetryPolicy",
]
