"""Prompt endpoints: streamed over SSE or answered in one response."""

import logging
from contextlib import aclosing

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field
from sse_starlette.sse import EventSourceResponse

from chatstream.agent import MediaItem
from chatstream.api.deps import get_emitter
from chatstream.config import Settings, get_settings
from chatstream.stream import PromptRequest, StreamEmitter, heartbeat_events

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class CompletionResponse(BaseModel):
    chat_id: str = Field(serialization_alias="chatId")
    completion: str


def _too_large(filename: str | None, max_bytes: int) -> HTTPException:
    logger.warning("Rejecting attachment %r: larger than %d bytes", filename, max_bytes)
    return HTTPException(
        status_code=413,
        detail=f"Attachment {filename!r} exceeds the upload limit of {max_bytes} bytes",
    )


async def _read_uploads(
    files: list[UploadFile] | None, max_bytes: int
) -> tuple[MediaItem, ...]:
    """
    Read uploaded parts.

    Unreadable and empty parts are logged and left out. A part larger than
    `max_bytes` rejects the whole request with 413.
    """
    items = []
    for upload in files or []:
        if upload.size is not None and upload.size > max_bytes:
            raise _too_large(upload.filename, max_bytes)
        try:
            data = await upload.read()
        except OSError as e:
            logger.error("Could not read attachment %r: %s", upload.filename, e)
            continue
        if len(data) > max_bytes:
            raise _too_large(upload.filename, max_bytes)
        if not data:
            logger.warning("Skipping empty attachment %r", upload.filename)
            continue
        items.append(
            MediaItem(
                filename=upload.filename or "attachment",
                content_type=upload.content_type or DEFAULT_CONTENT_TYPE,
                data=data,
            )
        )
    return tuple(items)


async def _prompt_request(
    model: str | None,
    prompt: str | None,
    role: str | None,
    chat_id: str | None,
    attachments: list[UploadFile] | None,
    max_upload_bytes: int,
) -> PromptRequest:
    missing = [
        name for name, value in (("model", model), ("prompt", prompt), ("role", role))
        if not value or not value.strip()
    ]
    if missing:
        raise HTTPException(
            status_code=400, detail=f"Missing required field(s): {', '.join(missing)}"
        )
    return PromptRequest(
        model=model.strip(),
        prompt=prompt,
        role=role.strip(),
        chat_id=chat_id or None,
        attachments=await _read_uploads(attachments, max_upload_bytes),
    )


@router.post("/streaming/prompt")
async def stream_prompt(
    model: str | None = Form(None),
    prompt: str | None = Form(None),
    role: str | None = Form(None),
    chat_id: str | None = Form(None, alias="chatId"),
    attachments: list[UploadFile] | None = File(None),
    emitter: StreamEmitter = Depends(get_emitter),
    settings: Settings = Depends(get_settings),
) -> EventSourceResponse:
    """Stream the model's answer as `message` events, ending early with one `error` event on failure."""
    request = await _prompt_request(
        model, prompt, role, chat_id, attachments, settings.max_upload_bytes
    )

    async def event_generator():
        async with aclosing(emitter.open(request)) as events:
            async for event in events:
                yield event.as_sse()

    return EventSourceResponse(event_generator())


@router.get("/streaming/heartbeat")
async def heartbeat(settings: Settings = Depends(get_settings)) -> EventSourceResponse:
    """Emit a `heartbeat` event on a fixed interval until the client disconnects."""

    async def event_generator():
        async for event in heartbeat_events(settings.heartbeat_interval_seconds):
            yield event.as_sse()

    return EventSourceResponse(event_generator())


@router.post("/prompt", response_model=CompletionResponse)
async def complete_prompt(
    model: str | None = Form(None),
    prompt: str | None = Form(None),
    role: str | None = Form(None),
    chat_id: str | None = Form(None, alias="chatId"),
    attachments: list[UploadFile] | None = File(None),
    emitter: StreamEmitter = Depends(get_emitter),
    settings: Settings = Depends(get_settings),
) -> CompletionResponse:
    """Answer a prompt in a single response."""
    request = await _prompt_request(
        model, prompt, role, chat_id, attachments, settings.max_upload_bytes
    )
    result = await emitter.complete(request)
    return CompletionResponse(chat_id=result.chat_id, completion=result.completion)
