"""Session management endpoints."""

import math
from datetime import datetime
from typing import Generic, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel

from chatstream.api.deps import get_session_service
from chatstream.config import Settings, get_settings
from chatstream.conversation import SessionService
from chatstream.db import Role, Session, Turn

router = APIRouter(prefix="/sessions", tags=["sessions"])

T = TypeVar("T")


# --- Schemas ---


class SessionCreate(BaseModel):
    model: str | None = None
    title: str | None = None


class SessionUpdate(BaseModel):
    title: str


class SessionResponse(BaseModel):
    id: str
    title: str
    active: bool
    model_id: str
    turn_count: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AttachmentResponse(BaseModel):
    filename: str
    content_type: str

    class Config:
        from_attributes = True


class TurnResponse(BaseModel):
    id: str
    session_id: str
    role: Role
    content: str
    sequence_number: int
    created_at: datetime
    attachments: list[AttachmentResponse]

    class Config:
        from_attributes = True


class PageResponse(BaseModel, Generic[T]):
    content: list[T]
    page: int
    size: int
    total_elements: int
    total_pages: int
    first: bool
    last: bool

    @classmethod
    def build(cls, content: list, page: int, size: int, total: int) -> "PageResponse":
        total_pages = math.ceil(total / size) if size else 0
        return cls(
            content=content,
            page=page,
            size=size,
            total_elements=total,
            total_pages=total_pages,
            first=page == 0,
            last=page + 1 >= total_pages,
        )


# --- Routes ---


@router.post("", response_model=SessionResponse)
async def create_session(
    data: SessionCreate,
    service: SessionService = Depends(get_session_service),
    settings: Settings = Depends(get_settings),
) -> Session:
    """Create a new, empty session."""
    return await service.create(
        model_id=data.model or settings.default_model,
        title=data.title or settings.default_title,
    )


@router.get("", response_model=PageResponse[SessionResponse])
async def list_sessions(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    active_only: bool = Query(True, alias="activeOnly"),
    service: SessionService = Depends(get_session_service),
) -> PageResponse[SessionResponse]:
    """List sessions, most recently updated first."""
    sessions, total = await service.list_page(page, size, active_only)
    return PageResponse[SessionResponse].build(
        [SessionResponse.model_validate(s) for s in sessions], page, size, total
    )


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session_detail(
    session_id: str,
    service: SessionService = Depends(get_session_service),
) -> Session:
    return await service.get(session_id)


@router.patch("/{session_id}", response_model=SessionResponse)
async def update_session(
    session_id: str,
    data: SessionUpdate,
    service: SessionService = Depends(get_session_service),
) -> Session:
    """Rename a session."""
    title = data.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title must not be empty")
    return await service.rename(session_id, title)


@router.post("/{session_id}/archive", response_model=SessionResponse)
async def archive_session(
    session_id: str,
    service: SessionService = Depends(get_session_service),
) -> Session:
    """Mark a session inactive; its turns are kept."""
    return await service.archive(session_id)


@router.delete("/{session_id}", status_code=204)
async def delete_session(
    session_id: str,
    service: SessionService = Depends(get_session_service),
) -> Response:
    """Delete a session with all turns and attachment files."""
    await service.delete(session_id)
    return Response(status_code=204)


@router.get("/{session_id}/turns", response_model=PageResponse[TurnResponse])
async def list_turns(
    session_id: str,
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=200),
    service: SessionService = Depends(get_session_service),
) -> PageResponse[TurnResponse]:
    """Page through a session's turns, oldest first."""
    turns, total = await service.turns_page(session_id, page, size)
    return PageResponse[TurnResponse].build(
        [TurnResponse.model_validate(t) for t in turns], page, size, total
    )
