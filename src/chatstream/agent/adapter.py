"""Model invocation adapter: builds model input and wraps backend failures."""

import logging
from contextlib import aclosing
from typing import AsyncIterator, Protocol, Sequence

from chatstream.agent.messages import ChatMessage, MediaItem, ModelOptions, Role
from chatstream.db.models import Turn
from chatstream.errors import ModelInvocationError, PartialResponseError

logger = logging.getLogger(__name__)


class ModelBackend(Protocol):
    """Anything that can answer a list of role-tagged messages."""

    async def complete(self, messages: list[ChatMessage], options: ModelOptions) -> str:
        ...

    def stream(self, messages: list[ChatMessage], options: ModelOptions) -> AsyncIterator[str]:
        ...


class ModelAdapter:
    """
    Turns conversation history into backend input and invokes the backend.

    - build_messages: system instruction + history + current user turn
    - complete: one blocking answer
    - stream: lazy text increments; failures carry the text already emitted
    """

    def __init__(self, backend: ModelBackend, system_prompt_template: str):
        self._backend = backend
        self._template = system_prompt_template

    def system_instruction(self, persona_role: str) -> str:
        return self._template.format(role=persona_role)

    def build_messages(
        self,
        history: Sequence[Turn],
        prompt: str,
        attachments: Sequence[MediaItem],
        options: ModelOptions,
    ) -> list[ChatMessage]:
        """
        Assemble the model input in chronological order.

        Stored system turns and empty turns are not replayed. Attachments are
        only sent with the current turn.
        """
        messages = [ChatMessage(Role.SYSTEM, self.system_instruction(options.persona_role))]
        for turn in history:
            # Filtered after the window is taken, so fewer turns may be replayed.
            # The Messages API rejects empty content, and the instruction above
            # supersedes any stored system turn.
            if turn.role is Role.SYSTEM or not turn.content:
                continue
            messages.append(ChatMessage(turn.role, turn.content))
        messages.append(ChatMessage(Role.USER, prompt, tuple(attachments)))
        return messages

    async def complete(self, messages: list[ChatMessage], options: ModelOptions) -> str:
        try:
            return await self._backend.complete(messages, options)
        except ModelInvocationError:
            raise
        except Exception as e:
            logger.warning("Model %s failed: %s", options.model_id, e)
            raise ModelInvocationError(str(e)) from e

    async def stream(self, messages: list[ChatMessage], options: ModelOptions) -> AsyncIterator[str]:
        """Yield non-empty increments from the backend."""
        emitted: list[str] = []
        try:
            async with aclosing(self._backend.stream(messages, options)) as chunks:
                async for chunk in chunks:
                    if not chunk:
                        continue
                    emitted.append(chunk)
                    yield chunk
        except ModelInvocationError:
            raise
        except Exception as e:
            logger.warning(
                "Model %s failed after %d increments: %s", options.model_id, len(emitted), e
            )
            if emitted:
                raise PartialResponseError(str(e), "".join(emitted)) from e
            raise ModelInvocationError(str(e)) from e
