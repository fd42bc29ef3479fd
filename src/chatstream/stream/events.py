"""Server-Sent Event payloads sent to the client."""

from dataclasses import dataclass
from enum import Enum


class EventKind(str, Enum):
    MESSAGE = "message"
    ERROR = "error"
    HEARTBEAT = "heartbeat"


@dataclass(frozen=True)
class StreamEvent:
    """One push event; never persisted."""

    id: str
    event: EventKind
    data: str

    @classmethod
    def message(cls, correlation_id: str, chunk: str) -> "StreamEvent":
        return cls(correlation_id, EventKind.MESSAGE, chunk)

    @classmethod
    def error(cls, correlation_id: str, detail: str) -> "StreamEvent":
        return cls(correlation_id, EventKind.ERROR, detail)

    def as_sse(self) -> dict:
        """Dict accepted by sse_starlette's EventSourceResponse."""
        return {"id": self.id, "event": self.event.value, "data": self.data}
