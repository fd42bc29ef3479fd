"""SQLAlchemy models for sessions, turns and attachments."""

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Role(str, enum.Enum):
    """Author of a turn."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


def _new_id() -> str:
    return str(uuid4())


class Session(Base):
    """A conversation thread with its turn counter."""

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(255))
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    model_id: Mapped[str] = mapped_column(String(255))
    # Number of turns ever appended; also the last assigned sequence number
    turn_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, index=True)

    turns: Mapped[list["Turn"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="Turn.sequence_number",
    )


class Turn(Base):
    """One message in a session."""

    __tablename__ = "turns"
    __table_args__ = (UniqueConstraint("session_id", "sequence_number"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sessions.id", ondelete="CASCADE"), index=True
    )
    role: Mapped[Role] = mapped_column(Enum(Role, native_enum=False, length=16))
    content: Mapped[str] = mapped_column(Text, default="")
    sequence_number: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    session: Mapped["Session"] = relationship(back_populates="turns")
    attachments: Mapped[list["Attachment"]] = relationship(
        back_populates="turn",
        cascade="all, delete-orphan",
        order_by="Attachment.position",
        lazy="selectin",
    )


class Attachment(Base):
    """Descriptor of a file attached to a turn; the bytes live in the blob store."""

    __tablename__ = "attachments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    turn_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("turns.id", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    filename: Mapped[str] = mapped_column(String(255))
    content_type: Mapped[str] = mapped_column(String(255))
    data_ref: Mapped[str] = mapped_column(String(255))

    turn: Mapped["Turn"] = relationship(back_populates="attachments")
