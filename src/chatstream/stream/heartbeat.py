"""Keep-alive events for idle SSE connections."""

from typing import AsyncIterator

import anyio

from .events import EventKind, StreamEvent

HEARTBEAT_DATA = "ping"


async def heartbeat_events(interval: float) -> AsyncIterator[StreamEvent]:
    """Yield a heartbeat every `interval` seconds until the consumer stops."""
    tick = 0
    while True:
        await anyio.sleep(interval)
        yield StreamEvent(str(tick), EventKind.HEARTBEAT, HEARTBEAT_DATA)
        tick += 1
