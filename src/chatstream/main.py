"""chatstream server."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import make_url

from chatstream.config import PROJECT_ROOT, get_settings

# Load .env from the project root before settings are first read
load_dotenv(PROJECT_ROOT / ".env")

from chatstream.api import router  # noqa: E402
from chatstream.db import Base, engine  # noqa: E402
from chatstream.errors import (  # noqa: E402
    BlobStorageError,
    ModelInvocationError,
    SessionNotFoundError,
)
from chatstream.logging_config import configure_logging  # noqa: E402

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    settings.storage_path.mkdir(parents=True, exist_ok=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("chatstream ready (db=%s, storage=%s)", url.render_as_string(), settings.storage_path)
    yield
    await engine.dispose()


app = FastAPI(title="chatstream", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SessionNotFoundError)
async def session_not_found_handler(request: Request, exc: SessionNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Session not found"})


@app.exception_handler(BlobStorageError)
async def blob_storage_handler(request: Request, exc: BlobStorageError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": f"File processing error: {exc}"})


@app.exception_handler(ModelInvocationError)
async def model_error_handler(request: Request, exc: ModelInvocationError) -> JSONResponse:
    logger.error("Model invocation failed for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": f"Model error: {exc}"})


app.include_router(router)


def run() -> None:
    """Console entry point."""
    import uvicorn

    uvicorn.run("chatstream.main:app", host="0.0.0.0", port=8000)
