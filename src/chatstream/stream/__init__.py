"""Stream module for real-time event streaming."""

from .emitter import CompletionResult, Outcome, PromptRequest, StreamEmitter
from .events import EventKind, StreamEvent
from .heartbeat import heartbeat_events

__all__ = [
    "CompletionResult",
    "EventKind",
    "Outcome",
    "PromptRequest",
    "StreamEmitter",
    "StreamEvent",
    "heartbeat_events",
]
