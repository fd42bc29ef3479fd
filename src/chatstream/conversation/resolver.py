"""Maps a client-supplied session id to a stored session."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatstream.config import Settings
from chatstream.db.models import Session

logger = logging.getLogger(__name__)


def new_session(model_id: str, title: str) -> Session:
    return Session(title=title, active=True, model_id=model_id, turn_count=0)


class SessionResolver:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], settings: Settings):
        self._session_factory = session_factory
        self._settings = settings

    async def resolve(self, session_id: str | None, model_id: str) -> Session:
        """
        Return the session for session_id, creating one when needed.

        An unknown id is not an error: a new session with a fresh id is
        created for the given model and the client's id is dropped.
        """
        async with self._session_factory() as db:
            if session_id:
                existing = await db.get(Session, session_id)
                if existing is not None:
                    return existing
                logger.info("Session %s not found, starting a new one", session_id)

            session = new_session(model_id, self._settings.default_title)
            db.add(session)
            await db.commit()
            logger.info("Created session %s (model=%s)", session.id, model_id)
            return session
