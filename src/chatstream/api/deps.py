"""FastAPI dependencies wiring the conversation components."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatstream.agent import ModelBackend, get_model_backend
from chatstream.config import Settings, get_settings
from chatstream.conversation import SessionService
from chatstream.db import get_session, get_session_factory
from chatstream.storage import BlobStore, get_blob_store
from chatstream.stream import StreamEmitter


def get_session_service(
    db: AsyncSession = Depends(get_session),
    blobs: BlobStore = Depends(get_blob_store),
) -> SessionService:
    return SessionService(db, blobs)


def get_emitter(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    backend: ModelBackend = Depends(get_model_backend),
    blobs: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> StreamEmitter:
    """A fresh emitter per request; it holds no state between requests."""
    return StreamEmitter.build(session_factory, backend, blobs, settings)
