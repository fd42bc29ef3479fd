"""Database module for chatstream."""

from .models import Attachment, Base, Role, Session, Turn
from .session import DATABASE_URL, async_session, engine, get_session, get_session_factory

__all__ = [
    "Attachment",
    "Base",
    "Role",
    "Session",
    "Turn",
    "engine",
    "async_session",
    "get_session",
    "get_session_factory",
    "DATABASE_URL",
]
