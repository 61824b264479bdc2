"""Pipeline configuration constants.

Centralizes magic numbers and configuration values for the request pipeline.
Runtime values (API keys, URLs) come from the environment; see cli/providers.py.
"""

from datetime import timedelta

# Outbound request policy
REQUEST_TIMEOUT_SECONDS = 30.0  # Per attempt, independent of the retry budget
MAX_RETRIES = 2  # Retries after the initial attempt (401 and 5xx share the counter)
BACKOFF_BASE_MS = 1000
BACKOFF_MAX_MS = 10000

# Credential freshness
CREDENTIAL_EXPIRY_SKEW = timedelta(seconds=60)

# Conversation window
CHAT_HISTORY_KEY = "chat_history"
CHAT_HISTORY_TTL = timedelta(hours=24)
CONTEXT_WINDOW_SIZE = 5  # Entries embedded into the enriched prompt

# Document state
DOCUMENT_KEY = "app_content"

# Model routing
DEFAULT_MODEL = "gemini-pro"
DEFAULT_PROVIDER = "google"
FALLBACK_PROVIDER = "groq"
FALLBACK_MODEL = "llama-3.1-sonar-large-128k-online"
FALLBACK_NOTICE = "Content was generated using a fallback model due to safety filters"

# Persisted content
TITLE_MAX_LENGTH = 50

# HTTP surface
GENERATE_PATH = "/api/generate"

# Chat seeds
WELCOME_MESSAGE = (
    "Hello! I'm your AI assistant powered by Gemini and Groq. I can help you create "
    "content or chat about any topic. For advanced models like GPT-4 or Claude, you'll "
    "need to add your API keys in settings. What would you like to discuss?"
)
NEW_CHAT_MESSAGE = "Hello! How can I help you today?"

# Environment
ENV_VAR = "CONTENTFORGE_ENV"
LOG_LEVEL_VAR = "CONTENTFORGE_LOG_LEVEL"
