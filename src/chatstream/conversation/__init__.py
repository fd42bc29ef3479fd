"""Conversation storage components: resolver, history, writer, management."""

from .history import HistoryAssembler
from .resolver import SessionResolver
from .sessions import SessionService
from .writer import PersistenceWriter

__all__ = ["HistoryAssembler", "PersistenceWriter", "SessionResolver", "SessionService"]
