"""Role-tagged messages exchanged with the model backend."""

from dataclasses import dataclass, field

from chatstream.db.models import Role


@dataclass(frozen=True)
class MediaItem:
    """An uploaded file: forwarded to the model and stored with the user turn."""
    filename: str
    content_type: str
    data: bytes


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str
    attachments: tuple[MediaItem, ...] = field(default=())


@dataclass(frozen=True)
class ModelOptions:
    """Per-call options: which model to run and the persona for the system prompt."""
    model_id: str
    persona_role: str


__all__ = ["ChatMessage", "MediaItem", "ModelOptions", "Role"]
