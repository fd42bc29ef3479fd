"""Anthropic Messages API backend."""

import base64
import logging
from typing import AsyncIterator

import anthropic

from chatstream.agent.messages import ChatMessage, MediaItem, ModelOptions, Role

logger = logging.getLogger(__name__)


def _media_block(item: MediaItem) -> dict | None:
    """Content block for an attachment, or None if the type can't be sent."""
    content_type = item.content_type.split(";")[0].strip().lower()
    if content_type.startswith("image/"):
        return {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": content_type,
                "data": base64.b64encode(item.data).decode("ascii"),
            },
        }
    if content_type == "application/pdf":
        return {
            "type": "document",
            "source": {
                "type": "base64",
                "media_type": content_type,
                "data": base64.b64encode(item.data).decode("ascii"),
            },
        }
    if content_type.startswith("text/"):
        return {
            "type": "document",
            "source": {
                "type": "text",
                "media_type": "text/plain",
                "data": item.data.decode("utf-8", errors="replace"),
            },
            "title": item.filename,
        }
    logger.warning("Dropping attachment %s: unsupported type %s", item.filename, item.content_type)
    return None


def to_anthropic_messages(messages: list[ChatMessage]) -> tuple[str, list[dict]]:
    """
    Map role-tagged messages onto the Messages API.

    Returns (system, messages): system messages are joined into the system
    parameter; user messages carry their attachments ahead of the text.
    """
    system_parts: list[str] = []
    payload: list[dict] = []
    for message in messages:
        if message.role is Role.SYSTEM:
            system_parts.append(message.content)
        elif message.role is Role.USER:
            blocks = [b for b in map(_media_block, message.attachments) if b is not None]
            if message.content:
                blocks.append({"type": "text", "text": message.content})
            if blocks:
                payload.append({"role": "user", "content": blocks})
        elif message.role is Role.ASSISTANT:
            if message.content:
                payload.append({"role": "assistant", "content": message.content})
        else:
            raise ValueError(f"Unknown role: {message.role!r}")
    return "\n\n".join(system_parts), payload


class AnthropicBackend:
    """Model backend calling Claude through the async Anthropic client."""

    def __init__(self, client: anthropic.AsyncAnthropic | None = None, max_tokens: int = 4096):
        self._client = client or anthropic.AsyncAnthropic()
        self.max_tokens = max_tokens

    def _request(self, messages: list[ChatMessage], options: ModelOptions) -> dict:
        system, payload = to_anthropic_messages(messages)
        request = {
            "model": options.model_id,
            "max_tokens": self.max_tokens,
            "messages": payload,
        }
        if system:
            request["system"] = system
        return request

    async def complete(self, messages: list[ChatMessage], options: ModelOptions) -> str:
        response = await self._client.messages.create(**self._request(messages, options))
        return "".join(block.text for block in response.content if block.type == "text")

    async def stream(self, messages: list[ChatMessage], options: ModelOptions) -> AsyncIterator[str]:
        async with self._client.messages.stream(**self._request(messages, options)) as stream:
            async for text in stream.text_stream:
                yield text
