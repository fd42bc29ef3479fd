"""
Test fixtures for chatstream tests.
"""

import asyncio
import os

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set test database before importing app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from chatstream.agent import ChatMessage, ModelOptions, get_model_backend
from chatstream.config import Settings, get_settings
from chatstream.conversation import HistoryAssembler, PersistenceWriter, SessionResolver
from chatstream.db import Base, Turn, get_session_factory
from chatstream.main import app
from chatstream.storage import BlobStore, get_blob_store
from chatstream.stream import StreamEmitter


class FakeBackend:
    """
    Scripted model backend.

    Streams `chunks` in order, then raises `error` if one is set, or hangs
    forever if `hang` is set. `calls` records every invocation.
    """

    def __init__(self, chunks=("Hello", ", ", "world"), error=None, hang=False):
        self.chunks = list(chunks)
        self.error = error
        self.hang = hang
        self.calls: list[tuple[list[ChatMessage], ModelOptions]] = []
        self.closed = False

    async def complete(self, messages, options):
        self.calls.append((messages, options))
        if self.error is not None:
            raise self.error
        return "".join(self.chunks)

    async def stream(self, messages, options):
        self.calls.append((messages, options))
        try:
            for chunk in self.chunks:
                await asyncio.sleep(0)
                yield chunk
            if self.error is not None:
                raise self.error
            if self.hang:
                await asyncio.Event().wait()
        finally:
            self.closed = True


async def stored_turns(session_factory, session_id: str) -> list[Turn]:
    """All turns of a session ordered by sequence number."""
    async with session_factory() as db:
        result = await db.execute(
            select(Turn).where(Turn.session_id == session_id).order_by(Turn.sequence_number)
        )
        return list(result.scalars().all())


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        storage_path=tmp_path / "uploads",
        stream_timeout_seconds=5.0,
        heartbeat_interval_seconds=0.01,
        default_model="test-model",
    )


@pytest.fixture
async def engine(settings):
    """File-backed SQLite per test, so concurrent connections share one database."""
    test_engine = create_async_engine(settings.database_url, echo=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def blobs(settings) -> BlobStore:
    return BlobStore(settings.storage_path)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def resolver(session_factory, settings) -> SessionResolver:
    return SessionResolver(session_factory, settings)


@pytest.fixture
def history(session_factory) -> HistoryAssembler:
    return HistoryAssembler(session_factory)


@pytest.fixture
def writer(session_factory, blobs) -> PersistenceWriter:
    return PersistenceWriter(session_factory, blobs)


@pytest.fixture
def emitter(session_factory, backend, blobs, settings) -> StreamEmitter:
    return StreamEmitter.build(session_factory, backend, blobs, settings)


@pytest.fixture
async def client(session_factory, backend, blobs, settings):
    """Async HTTP client for testing FastAPI app."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_model_backend] = lambda: backend
    app.dependency_overrides[get_blob_store] = lambda: blobs
    app.dependency_overrides[get_settings] = lambda: settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def db_session(session_factory):
    """Direct database session for test setup/assertions."""
    async with session_factory() as session:
        yield session
