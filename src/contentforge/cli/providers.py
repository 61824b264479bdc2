"""Provider factory functions for CLI.

Centralizes creation of routers, auth clients, storage and the API app from
environment variables. Hides configuration details from command
implementations.
"""

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI
from rich.console import Console

from ..auth import GoTrueAuthClient
from ..config import ENV_VAR
from ..conversation import KeyValueStore, create_key_value_store
from ..llm import LLMProvider, create_llm_provider
from ..routing import ModelCatalog, ProviderRouter
from ..server import (
    ContentRepository,
    GoTrueTokenVerifier,
    InMemoryContentRepository,
    InMemoryKeyVault,
    KeyVault,
    PostgrestContentRepository,
    PostgrestKeyVault,
    create_app,
)

# Default console for output
_console = Console()

# Providers the server can call with its own key: (provider, key variable, model variable, default model)
SERVER_PROVIDERS = (
    ("google", "GEMINI_API_KEY", "GEMINI_MODEL", "gemini-pro"),
    ("groq", "GROQ_API_KEY", "GROQ_MODEL", "llama-3.1-sonar-large-128k-online"),
)


def get_server_providers(console: Console | None = None) -> dict[str, LLMProvider]:
    """Create the server-keyed LLM providers.

    Environment variables:
        GEMINI_API_KEY: Google AI key (default provider)
        GEMINI_MODEL: Gemini default model (default: gemini-pro)
        GROQ_API_KEY: Groq key (safety fallback provider)
        GROQ_MODEL: Groq default model
    """
    con = console or _console
    providers: dict[str, LLMProvider] = {}

    for name, key_var, model_var, default_model in SERVER_PROVIDERS:
        api_key = os.getenv(key_var)
        if not api_key:
            con.print(f"[yellow]Warning: {key_var} not set, {name} models need a user key[/yellow]")
            continue
        providers[name] = create_llm_provider(
            name, api_key=api_key, model=os.getenv(model_var, default_model)
        )

    return providers


def get_router(console: Console | None = None) -> ProviderRouter:
    return ProviderRouter(ModelCatalog(), get_server_providers(console))


def _supabase_settings() -> tuple[str, str]:
    url = os.getenv("SUPABASE_URL")
    anon_key = os.getenv("SUPABASE_ANON_KEY")
    if not url or not anon_key:
        raise RuntimeError("Missing Supabase environment variables (SUPABASE_URL, SUPABASE_ANON_KEY)")
    return url.rstrip("/"), anon_key


def get_records(console: Console | None = None) -> tuple[KeyVault, ContentRepository]:
    """Create the key vault and content repository.

    Environment variables:
        SUPABASE_URL: Project URL
        SUPABASE_SERVICE_KEY: Service key for table access (in-memory stores otherwise)
    """
    con = console or _console
    url = os.getenv("SUPABASE_URL")
    service_key = os.getenv("SUPABASE_SERVICE_KEY")

    if not url or not service_key:
        con.print("[yellow]Warning: SUPABASE_SERVICE_KEY not set, keys and content are kept in memory[/yellow]")
        return InMemoryKeyVault(), InMemoryContentRepository()

    return PostgrestKeyVault(url, service_key), PostgrestContentRepository(url, service_key)


def get_server_app() -> FastAPI:
    """App factory for `uvicorn --factory` and the `serve` command."""
    load_dotenv()
    url, anon_key = _supabase_settings()
    key_vault, repository = get_records()

    return create_app(
        router=get_router(),
        verifier=GoTrueTokenVerifier(f"{url}/auth/v1", anon_key),
        key_vault=key_vault,
        repository=repository,
        environment=os.getenv(ENV_VAR, "production"),
    )


def get_auth_client(**kwargs: Any) -> GoTrueAuthClient:
    """Create the GoTrue auth client.

    Environment variables:
        SUPABASE_URL: Project URL (auth lives under /auth/v1)
        SUPABASE_ANON_KEY: Project anon key
    """
    url, anon_key = _supabase_settings()
    return GoTrueAuthClient(f"{url}/auth/v1", anon_key, **kwargs)


def get_key_value_store() -> KeyValueStore:
    """Create the local store for chat history and the document.

    Environment variables:
        CONTENTFORGE_STORE: memory or sqlite (default: sqlite)
        CONTENTFORGE_DB: SQLite path (default: ~/.contentforge/contentforge.db)
    """
    backend = os.getenv("CONTENTFORGE_STORE", "sqlite")
    if backend == "sqlite":
        path = os.getenv("CONTENTFORGE_DB", str(Path.home() / ".contentforge" / "contentforge.db"))
        return create_key_value_store("sqlite", path=path)
    return create_key_value_store(backend)


def get_api_url() -> str:
    return os.getenv("CONTENTFORGE_API_URL", "http://localhost:8000")
