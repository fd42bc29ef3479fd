"""Appends turns to a session with monotonic sequence numbers."""

import logging
from datetime import datetime
from typing import Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatstream.agent.messages import MediaItem
from chatstream.db.models import Attachment, Role, Session, Turn
from chatstream.errors import BlobStorageError, SessionNotFoundError
from chatstream.storage import BlobStore

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class PersistenceWriter:
    """
    Appends turns and stores their attachments.

    The sequence number comes from a single UPDATE ... RETURNING on the
    session counter, so concurrent appends to one session never share or
    skip a number.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        blobs: BlobStore,
    ):
        self._session_factory = session_factory
        self._blobs = blobs

    async def _next_sequence(self, db: AsyncSession, session_id: str) -> int:
        result = await db.execute(
            update(Session)
            .where(Session.id == session_id)
            .values(turn_count=Session.turn_count + 1, updated_at=datetime.now())
            .returning(Session.turn_count)
            .execution_options(synchronize_session=False)
        )
        sequence = result.scalar_one_or_none()
        if sequence is None:
            raise SessionNotFoundError(session_id)
        return sequence

    async def _store_attachments(self, attachments: Sequence[MediaItem]) -> list[Attachment]:
        stored: list[Attachment] = []
        for item in attachments:
            try:
                ref = await self._blobs.store(item.filename, item.data)
            except BlobStorageError as e:
                logger.error("Skipping attachment %r: %s", item.filename, e)
                continue
            stored.append(
                Attachment(
                    position=len(stored),
                    filename=item.filename,
                    content_type=item.content_type or DEFAULT_CONTENT_TYPE,
                    data_ref=ref,
                )
            )
        return stored

    async def append_turn(
        self,
        session_id: str,
        role: Role,
        content: str,
        attachments: Sequence[MediaItem] = (),
    ) -> Turn:
        """Append a turn and return it with its sequence number."""
        async with self._session_factory() as db:
            sequence = await self._next_sequence(db, session_id)
            stored = await self._store_attachments(attachments)
            turn = Turn(
                session_id=session_id,
                role=role,
                content=content,
                sequence_number=sequence,
                created_at=datetime.now(),
                attachments=stored,
            )
            db.add(turn)
            try:
                await db.commit()
            except Exception:
                await db.rollback()
                for attachment in stored:
                    await self._discard_blob(attachment.data_ref)
                raise

        logger.debug(
            "Appended %s turn #%d to session %s", role.value, sequence, session_id
        )
        return turn

    async def _discard_blob(self, ref: str) -> None:
        try:
            await self._blobs.delete(ref)
        except BlobStorageError as e:
            logger.error("Could not remove orphaned blob %s: %s", ref, e)
