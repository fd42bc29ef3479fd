"""Runs one conversation turn and relays the model output as stream events."""

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import AsyncIterator
from uuid import uuid4

import anyio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatstream.agent import ChatMessage, MediaItem, ModelAdapter, ModelBackend, ModelOptions
from chatstream.config import Settings
from chatstream.conversation import HistoryAssembler, PersistenceWriter, SessionResolver
from chatstream.db.models import Role, Session
from chatstream.errors import ModelInvocationError
from chatstream.storage import BlobStore

from .events import StreamEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptRequest:
    """A validated prompt submission."""
    model: str
    prompt: str
    role: str
    chat_id: str | None = None
    attachments: tuple[MediaItem, ...] = ()


@dataclass(frozen=True)
class CompletionResult:
    chat_id: str
    completion: str


class Outcome(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"
    CANCELLED = "cancelled"


class StreamEmitter:
    """
    Owns the lifecycle of a single prompt request.

    resolve session -> assemble history -> persist user turn -> invoke model
    -> relay increments -> persist assistant turn

    The assistant turn is written once per request that reaches the model,
    with whatever text arrived before success, failure, timeout or client
    disconnect. Only a failure before the first increment stores nothing.
    """

    def __init__(
        self,
        resolver: SessionResolver,
        history: HistoryAssembler,
        adapter: ModelAdapter,
        writer: PersistenceWriter,
        settings: Settings,
    ):
        self._resolver = resolver
        self._history = history
        self._adapter = adapter
        self._writer = writer
        self._settings = settings

    @classmethod
    def build(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        backend: ModelBackend,
        blobs: BlobStore,
        settings: Settings,
    ) -> "StreamEmitter":
        return cls(
            resolver=SessionResolver(session_factory, settings),
            history=HistoryAssembler(session_factory),
            adapter=ModelAdapter(backend, settings.system_prompt_template),
            writer=PersistenceWriter(session_factory, blobs),
            settings=settings,
        )

    async def _prepare(
        self, request: PromptRequest
    ) -> tuple[Session, list[ChatMessage], ModelOptions]:
        session = await self._resolver.resolve(request.chat_id, request.model)

        history = []
        if session.turn_count > 0:
            history = await self._history.recent(session.id, self._settings.history_window)

        options = ModelOptions(model_id=request.model, persona_role=request.role)
        messages = self._adapter.build_messages(
            history, request.prompt, request.attachments, options
        )

        # User turn is always stored before the model is invoked
        await self._writer.append_turn(
            session.id, Role.USER, request.prompt, request.attachments
        )
        return session, messages, options

    async def complete(self, request: PromptRequest) -> CompletionResult:
        """Answer without streaming; model failures propagate."""
        session, messages, options = await self._prepare(request)
        completion = await self._adapter.complete(messages, options)
        await self._writer.append_turn(session.id, Role.ASSISTANT, completion)
        return CompletionResult(chat_id=session.id, completion=completion)

    def open(self, request: PromptRequest) -> AsyncIterator[StreamEvent]:
        """Start a streamed turn; every event carries one fresh correlation id."""
        return self._run(request, str(uuid4()))

    async def _run(self, request: PromptRequest, correlation_id: str) -> AsyncIterator[StreamEvent]:
        logger.info(
            "Starting stream %s (model=%s, chat=%s)", correlation_id, request.model, request.chat_id
        )
        try:
            session, messages, options = await self._prepare(request)
        except Exception as e:
            logger.exception("Could not start stream %s", correlation_id)
            yield StreamEvent.error(correlation_id, f"Error: {e}")
            return

        buffer: list[str] = []
        outcome = Outcome.SUCCESS
        detail = ""
        timeout = self._settings.stream_timeout_seconds
        deadline = anyio.current_time() + timeout
        chunks = self._adapter.stream(messages, options)
        try:
            while True:
                try:
                    with anyio.fail_after(max(deadline - anyio.current_time(), 0)):
                        chunk = await chunks.__anext__()
                except StopAsyncIteration:
                    break
                buffer.append(chunk)
                yield StreamEvent.message(correlation_id, chunk)
        except TimeoutError:
            outcome = Outcome.CANCELLED
            detail = f"Error: no response completed within {timeout:g} seconds"
            logger.warning("Stream %s timed out after %d increments", correlation_id, len(buffer))
        except ModelInvocationError as e:
            outcome = Outcome.ERROR
            detail = f"Error: {e}"
            logger.error("Stream %s failed after %d increments: %s", correlation_id, len(buffer), e)
        except (GeneratorExit, asyncio.CancelledError):
            # Client disconnected: keep the partial answer, send nothing more
            logger.info("Client left stream %s after %d increments", correlation_id, len(buffer))
            await self._finalize(session.id, correlation_id, Outcome.CANCELLED, buffer)
            raise
        finally:
            with anyio.CancelScope(shield=True):
                await chunks.aclose()

        await self._finalize(session.id, correlation_id, outcome, buffer)
        if detail:
            yield StreamEvent.error(correlation_id, detail)

    async def _finalize(
        self, session_id: str, correlation_id: str, outcome: Outcome, buffer: list[str]
    ) -> None:
        """Persist the assistant turn; write failures are logged, not raised."""
        if outcome is Outcome.ERROR and not buffer:
            logger.info("Stream %s produced no output; no assistant turn stored", correlation_id)
            return

        text = "".join(buffer)
        try:
            with anyio.CancelScope(shield=True):
                await self._writer.append_turn(session_id, Role.ASSISTANT, text)
        except Exception:
            logger.exception(
                "Failed to persist assistant turn for stream %s (session %s)",
                correlation_id,
                session_id,
            )
            return
        logger.info(
            "Stream %s finished: %s, %d chars stored", correlation_id, outcome.value, len(text)
        )
