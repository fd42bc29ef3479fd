"""Session CRUD and paged turn history."""

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from chatstream.conversation.resolver import new_session
from chatstream.db.models import Session, Turn
from chatstream.errors import BlobStorageError, SessionNotFoundError
from chatstream.storage import BlobStore

logger = logging.getLogger(__name__)


class SessionService:
    def __init__(self, db: AsyncSession, blobs: BlobStore):
        self.db = db
        self.blobs = blobs

    async def get(self, session_id: str) -> Session:
        session = await self.db.get(Session, session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def create(self, model_id: str, title: str) -> Session:
        session = new_session(model_id, title)
        self.db.add(session)
        await self.db.commit()
        await self.db.refresh(session)
        return session

    async def list_page(self, page: int, size: int, active_only: bool) -> tuple[list[Session], int]:
        """One page of sessions, most recently updated first, plus the total count."""
        query = select(Session)
        count_query = select(func.count()).select_from(Session)
        if active_only:
            query = query.where(Session.active.is_(True))
            count_query = count_query.where(Session.active.is_(True))

        total = (await self.db.execute(count_query)).scalar_one()
        result = await self.db.execute(
            query.order_by(Session.updated_at.desc(), Session.id)
            .offset(page * size)
            .limit(size)
        )
        return list(result.scalars().all()), total

    async def rename(self, session_id: str, title: str) -> Session:
        session = await self.get(session_id)
        session.title = title
        session.updated_at = datetime.now()
        await self.db.commit()
        await self.db.refresh(session)
        return session

    async def archive(self, session_id: str) -> Session:
        session = await self.get(session_id)
        session.active = False
        session.updated_at = datetime.now()
        await self.db.commit()
        await self.db.refresh(session)
        return session

    async def delete(self, session_id: str) -> None:
        """Delete the session, its turns, and the attachment bytes they reference."""
        result = await self.db.execute(
            select(Session)
            .where(Session.id == session_id)
            .options(selectinload(Session.turns))
        )
        session = result.scalar_one_or_none()
        if session is None:
            raise SessionNotFoundError(session_id)

        refs = [a.data_ref for turn in session.turns for a in turn.attachments]
        await self.db.delete(session)
        await self.db.commit()

        for ref in refs:
            try:
                await self.blobs.delete(ref)
            except BlobStorageError as e:
                logger.error("Failed to delete blob %s of session %s: %s", ref, session_id, e)
        logger.info("Deleted session %s (%d attachments)", session_id, len(refs))

    async def turns_page(self, session_id: str, page: int, size: int) -> tuple[list[Turn], int]:
        """One page of the session's turns, oldest first, plus the total count."""
        await self.get(session_id)
        total = (
            await self.db.execute(
                select(func.count()).select_from(Turn).where(Turn.session_id == session_id)
            )
        ).scalar_one()
        result = await self.db.execute(
            select(Turn)
            .where(Turn.session_id == session_id)
            .order_by(Turn.sequence_number)
            .offset(page * size)
            .limit(size)
        )
        return list(result.scalars().all()), total
