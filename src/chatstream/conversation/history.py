"""Recency window over a session's turns."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatstream.db.models import Turn


class HistoryAssembler:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def recent(self, session_id: str, limit: int) -> list[Turn]:
        """Last `limit` turns of the session, oldest first."""
        if limit <= 0:
            return []
        async with self._session_factory() as db:
            result = await db.execute(
                select(Turn)
                .where(Turn.session_id == session_id)
                .order_by(Turn.sequence_number.desc())
                .limit(limit)
            )
            turns = list(result.scalars().all())
        turns.reverse()
        return turns
