"""Outbound call execution with timeout, credential refresh and backoff.

Retry state machine for one call:

    attempt 0 ──► 2xx ───────────────► return
        │
        ├─ timeout ──────────────────► RequestTimeoutError (never retried)
        ├─ 401, budget left ─────────► force refresh, retry immediately
        ├─ 5xx / network, budget left ► sleep backoff(attempt), retry
        ├─ 401 / 5xx, budget spent ──► ExhaustedRetriesError
        └─ other non-2xx ────────────► NonRetryableError

401 and 5xx retries draw from the same counter; only 5xx and network
retries back off.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import httpx

from ..auth import Credential, CredentialStore
from ..errors import ExhaustedRetriesError, NonRetryableError, RequestTimeoutError
from .models import ApiRequest, ApiResponse, RetryPolicy

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class AttemptState:
    """Explicit retry state for one execute() call."""

    attempt: int = 0
    started: float = field(default_factory=time.monotonic)
    last_status: int | None = None
    last_body: str = ""
    delays: list[float] = field(default_factory=list)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def record(self, status: int | None, body: str) -> None:
        self.last_status = status
        self.last_body = body


class ResilientExecutor:
    """Wraps a single outbound call with the pipeline's reliability policy.

    Usage:
        executor = ResilientExecutor(httpx.AsyncClient(base_url=url), store)
        response = await executor.execute(ApiRequest(method="POST", path="/api/generate", json_body=...))
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: CredentialStore,
        policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._client = client
        self._credentials = credentials
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def execute(self, request: ApiRequest, policy: RetryPolicy | None = None) -> ApiResponse:
        """Execute `request` under `policy` (defaults to the executor's policy).

        Returns:
            The first 2xx response

        Raises:
            RequestTimeoutError: An attempt exceeded the per-attempt timeout
            ExhaustedRetriesError: 401/5xx/network failures outlasted the budget
            NonRetryableError: Any other non-2xx status
            UnauthenticatedError: The credential could not be refreshed
        """
        policy = policy or self._policy
        state = AttemptState()
        credential = await self._credentials.get_valid_credential()

        while True:
            try:
                response = await asyncio.wait_for(
                    self._send(request, credential, policy.timeout), timeout=policy.timeout
                )
            except (asyncio.TimeoutError, httpx.TimeoutException):
                logger.error(
                    "%s %s timed out after %.1fs (attempt %d)",
                    request.method, request.path, policy.timeout, state.attempt + 1,
                )
                raise RequestTimeoutError(policy.timeout, request.method, request.path) from None
            except httpx.TransportError as e:
                state.record(None, str(e))
                logger.warning(
                    "%s %s -> network error: %s (attempt %d)",
                    request.method, request.path, e, state.attempt + 1,
                )
                if state.attempt >= policy.max_retries:
                    raise ExhaustedRetriesError(None, str(e), attempts=state.attempt + 1) from e
                await self._backoff(policy, state)
                continue

            state.record(response.status, response.body)
            logger.info(
                "%s %s -> %d (attempt %d)",
                request.method, request.path, response.status, state.attempt + 1,
            )

            if response.ok:
                return response

            if response.status == 401 or response.status >= 500:
                if state.attempt >= policy.max_retries:
                    logger.error(
                        "%s %s failed after %d attempts in %.2fs: %d",
                        request.method, request.path, state.attempt + 1, state.elapsed, response.status,
                    )
                    raise ExhaustedRetriesError(
                        response.status, response.body, attempts=state.attempt + 1
                    )

                if response.status == 401:
                    credential = await self._credentials.force_refresh(credential)
                    state.attempt += 1
                else:
                    await self._backoff(policy, state)
                continue

            raise NonRetryableError(response.status, response.body)

    async def _send(self, request: ApiRequest, credential: Credential, timeout: float) -> ApiResponse:
        headers = {**request.headers, "Authorization": credential.authorization}
        response = await self._client.request(
            request.method,
            request.path,
            json=request.json_body,
            headers=headers,
            timeout=timeout,
        )
        return ApiResponse(
            status=response.status_code,
            body=response.text,
            headers=dict(response.headers),
        )

    async def _backoff(self, policy: RetryPolicy, state: AttemptState) -> None:
        delay = policy.backoff_delay(state.attempt)
        state.delays.append(delay)
        logger.debug("Backing off %.2fs before retry %d", delay, state.attempt + 1)
        await self._sleep(delay)
        state.attempt += 1
