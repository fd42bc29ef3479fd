"""Model invocation: message types, adapter and backends."""

from functools import lru_cache

from chatstream.config import get_settings

from .adapter import ModelAdapter, ModelBackend
from .anthropic_backend import AnthropicBackend
from .messages import ChatMessage, MediaItem, ModelOptions


@lru_cache
def get_model_backend() -> ModelBackend:
    """Backend shared by all requests (the Anthropic client pools connections)."""
    return AnthropicBackend(max_tokens=get_settings().max_tokens)


__all__ = [
    "AnthropicBackend",
    "ChatMessage",
    "MediaItem",
    "ModelAdapter",
    "ModelBackend",
    "ModelOptions",
    "get_model_backend",
]
