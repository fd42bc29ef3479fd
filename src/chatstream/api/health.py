"""Health check endpoint."""

import time

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    """Connectivity check used by clients before opening a stream."""
    return {"status": "ok", "timestamp": str(int(time.time() * 1000))}
