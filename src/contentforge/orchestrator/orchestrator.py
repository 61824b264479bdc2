"""Drives one user turn from prompt to persisted content.

Turn protocol:
1. Record the user message.
2. Ask the model, with recent context, to classify the request and answer
   with a first line `TASK_TYPE: GENERATE|CHAT|EDIT`.
3. GENERATE: regenerate from the raw input with saving enabled (that
   content becomes the document), then ask for a short acknowledgment.
   EDIT: the parsed body becomes the document, then the acknowledgment.
   CHAT (or no marker): the body is the reply.

The three calls are strictly sequential. The window never ends a turn with
a user message and no assistant reply: failures become a visible error
reply, and cancellation rolls the user message back.
"""

import logging
from collections.abc import Iterable

from ..config import CONTEXT_WINDOW_SIZE, FALLBACK_NOTICE, NEW_CHAT_MESSAGE
from ..conversation import ConversationWindow, DocumentState, Message
from ..errors import PipelineError
from ..routing import ModelCatalog
from .client import GenerationClient, error_message
from .models import (
    ChatReply,
    ContentUpdated,
    ErrorOutcome,
    GenerationRequest,
    GenerationResponse,
    OrchestrationOutcome,
    TaskType,
    parse_task_response,
)
from .prompts import build_acknowledgment_prompt, build_enriched_prompt

logger = logging.getLogger(__name__)


class GenerationOrchestrator:
    """Turns user input into chat replies and document updates."""

    def __init__(
        self,
        client: GenerationClient,
        window: ConversationWindow,
        document: DocumentState,
        catalog: ModelCatalog | None = None,
        context_size: int = CONTEXT_WINDOW_SIZE,
    ):
        self._client = client
        self._window = window
        self._document = document
        self._catalog = catalog or ModelCatalog()
        self._context_size = context_size

    @property
    def window(self) -> ConversationWindow:
        return self._window

    @property
    def document(self) -> DocumentState:
        return self._document

    def resolve_model(self, model_id: str, user_key_providers: Iterable[str] = ()) -> str:
        """Swap an unavailable model for the default one."""
        return self._catalog.resolve_model(model_id, user_key_providers)

    async def handle(self, user_input: str, model_id: str) -> OrchestrationOutcome:
        """Run one turn.

        Returns:
            ContentUpdated, ChatReply or ErrorOutcome. Pipeline failures never
            propagate; cancellation and unexpected errors do, after the turn
            has been rolled back.
        """
        if not user_input.strip():
            raise ValueError("user_input must not be empty")

        context = self._window.recent(self._context_size)
        mark = len(self._window)
        previous_document = self._document.content

        # An append cancelled mid-save has already changed the window
        try:
            await self._window.append(Message.user(user_input))
            try:
                return await self._run_turn(user_input, model_id, context)
            except PipelineError as e:
                message = error_message(e)
                logger.warning("Turn failed (%s): %s", e.kind.value, message)
                await self._window.append(Message.assistant(f"Sorry, I encountered an error: {message}"))
                return ErrorOutcome(kind=e.kind, message=message)
        except BaseException:
            logger.info("Turn aborted, rolling back to %d messages", mark)
            await self._window.truncate(mark)
            if self._document.content != previous_document:
                await self._document.update(previous_document)
            raise

    async def _run_turn(self, user_input: str, model_id: str, context: list[Message]) -> OrchestrationOutcome:
        first = await self._client.generate(
            GenerationRequest(prompt=build_enriched_prompt(context, user_input), model_id=model_id)
        )
        result = parse_task_response(first.content, first.model)
        logger.info("Task type %s from %s", result.task_type.value, first.model)

        if result.task_type is TaskType.GENERATE:
            saved = await self._client.generate(
                GenerationRequest(prompt=user_input, model_id=model_id, save_flag=True)
            )
            await self._document.update(saved.content)
            ack = await self._acknowledge("generated", user_input, model_id)
            return ContentUpdated(
                task_type=TaskType.GENERATE,
                content=saved.content,
                reply=ack.content,
                requested_model=model_id,
                model_used=saved.model,
                notice=_notice(model_id, first, saved, ack),
            )

        if result.task_type is TaskType.EDIT:
            await self._document.update(result.body)
            ack = await self._acknowledge("edited", user_input, model_id)
            return ContentUpdated(
                task_type=TaskType.EDIT,
                content=result.body,
                reply=ack.content,
                requested_model=model_id,
                model_used=first.model,
                notice=_notice(model_id, first, ack),
            )

        await self._window.append(Message.assistant(result.body))
        return ChatReply(
            reply=result.body,
            requested_model=model_id,
            model_used=first.model,
            notice=_notice(model_id, first),
        )

    async def _acknowledge(self, action: str, user_input: str, model_id: str) -> GenerationResponse:
        ack = await self._client.generate(
            GenerationRequest(prompt=build_acknowledgment_prompt(action, user_input), model_id=model_id)
        )
        await self._window.append(Message.assistant(ack.content))
        return ack

    async def new_chat(self) -> None:
        """Start over with a greeting and an empty document."""
        await self._window.reset(Message.assistant(NEW_CHAT_MESSAGE))
        await self._document.clear()

    async def clear_history(self) -> None:
        await self._window.clear()
        await self._document.clear()


def _notice(requested_model: str, *responses: GenerationResponse) -> str | None:
    """First server notice of the turn; a silent model substitution still gets one."""
    for response in responses:
        if response.message:
            return response.message
    if any(response.model != requested_model for response in responses):
        return FALLBACK_NOTICE
    return None
