"""Server-sent events framing and the per-connection stream generator."""
import asyncio
import json
import logging
from collections.abc import AsyncIterator

from solfeed.core.config import settings
from solfeed.realtime.bus import Event, EventBus

logger = logging.getLogger(__name__)


def sse_pack(data: dict, event: str = "message") -> str:
    return f"event: {event}\ndata: {json.dumps(data, separators=(',', ':'), default=str)}\n\n"


async def event_stream(
    bus: EventBus,
    topic: str,
    *,
    ping_seconds: float | None = None,
    queue_size: int | None = None,
) -> AsyncIterator[str]:
    """Yield SSE frames for ``topic`` until the client disconnects."""
    ping_seconds = ping_seconds if ping_seconds is not None else settings.SSE_PING_SECONDS
    q: asyncio.Queue[Event] = asyncio.Queue(maxsize=queue_size or settings.SSE_QUEUE_SIZE)

    def enqueue(event: Event) -> None:
        try:
            q.put_nowait(event)
        except asyncio.QueueFull:
            # Slow consumer; it will converge on its next pull of the REST endpoints
            logger.warning("SSE queue full for %s, dropping %s event", topic, event.type)

    subscription = bus.subscribe(topic, enqueue)
    try:
        yield sse_pack({"topic": topic}, event="hello")
        while True:
            try:
                item = await asyncio.wait_for(q.get(), timeout=ping_seconds)
            except asyncio.TimeoutError:
                yield ": ping\n\n"
                continue
            yield sse_pack(item.payload, event=item.type)
    finally:
        subscription.close()
