# ============================================================
# contentforge generation API
# ------------------------------------------------------------
# Serves POST /api/generate:
#   - Bearer token -> user id (TokenVerifier)
#   - Caller-held provider keys (KeyVault)
#   - Model routing with safety fallback (ProviderRouter)
#   - Best-effort persistence (ContentRepository)
# ============================================================

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import FALLBACK_NOTICE, GENERATE_PATH
from ..errors import UnavailableError, UpstreamError
from ..orchestrator.models import GenerationResponse
from ..routing import ProviderRouter
from .persistence import ContentRecord, ContentRepository
from .security import InvalidTokenError, KeyVault, TokenVerifier

logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# 📦 Request / response models
# ------------------------------------------------------------
class GenerateBody(BaseModel):
    prompt: str | None = None
    model: str | None = None
    saveContent: bool = False


class ModelInfo(BaseModel):
    provider: str
    model: str
    available: bool
    requires_user_key: bool


def _error(status: int, message: str, error: str, exc: BaseException | None = None, debug: bool = False) -> JSONResponse:
    body: dict = {"message": message, "error": error}
    if debug and exc is not None:
        body["details"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status, content=body)


def _bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise InvalidTokenError("No token provided")
    return authorization.split(" ", 1)[1]


def create_app(
    router: ProviderRouter,
    verifier: TokenVerifier,
    key_vault: KeyVault,
    repository: ContentRepository,
    environment: str = "production",
) -> FastAPI:
    """Build the API around its collaborators."""
    debug = environment == "development"

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await router.close()

    app = FastAPI(title="contentforge API", version="0.1.0", lifespan=lifespan)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request, exc: RequestValidationError):
        return _error(400, f"Request validation failed: {exc.errors()}", "ValidationError")

    async def authenticate(authorization: str | None) -> str:
        return await verifier.verify(_bearer_token(authorization))

    # ------------------------------------------------------------
    # ✍️ Content generation
    # ------------------------------------------------------------
    @app.post(GENERATE_PATH, response_model=GenerationResponse, response_model_exclude_none=True)
    async def generate(body: GenerateBody, authorization: str | None = Header(default=None)):
        if not body.prompt or not body.model:
            return _error(
                400, "Missing required fields: prompt and model must be provided", "ValidationError"
            )

        try:
            user_id = await authenticate(authorization)
        except InvalidTokenError as e:
            logger.warning("Authentication error: %s", e)
            return _error(401, str(e) or "Authentication failed", "AuthenticationError")

        try:
            user_keys = await key_vault.get_keys(user_id)
            routed = await router.generate(body.prompt, body.model, user_keys)
        except UnavailableError as e:
            return _error(400, str(e), "UnavailableError", e, debug)
        except UpstreamError as e:
            logger.error("Content generation failed: %s", e)
            status = 502 if e.is_retryable() else 422
            return _error(status, str(e), "UpstreamError", e, debug)
        except Exception as e:
            logger.exception("Content generation failed")
            return _error(500, str(e) or "An unexpected error occurred", type(e).__name__, e, debug)

        if body.saveContent:
            record = ContentRecord.from_generation(user_id, body.prompt, routed.content, routed.model_used)
            try:
                await repository.insert(record)
            except Exception:
                # Saving is best-effort; the content is still returned
                logger.exception("Error saving generated content")

        return GenerationResponse(
            content=routed.content,
            model=routed.model_used,
            message=FALLBACK_NOTICE if routed.fallback_used else None,
        )

    # ------------------------------------------------------------
    # 🤖 Model catalog for the caller
    # ------------------------------------------------------------
    @app.get("/api/models", response_model=list[ModelInfo])
    async def list_models(authorization: str | None = Header(default=None)):
        try:
            user_id = await authenticate(authorization)
        except InvalidTokenError as e:
            return _error(401, str(e), "AuthenticationError")

        user_providers = set(await key_vault.get_keys(user_id))
        server_providers = router.server_key_providers()
        models = []
        for descriptor in router.catalog:
            keyed = descriptor.requires_user_key or descriptor.name not in server_providers
            for model_id in sorted(descriptor.supported_models):
                models.append(ModelInfo(
                    provider=descriptor.name,
                    model=model_id,
                    available=not keyed or descriptor.name in user_providers,
                    requires_user_key=keyed,
                ))
        return models

    # ------------------------------------------------------------
    # 🧭 Health check
    # ------------------------------------------------------------
    @app.get("/health")
    async def health():
        return {"status": "ok", "env": environment}

    return app
