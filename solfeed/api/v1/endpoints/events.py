"""Server-sent event streams for post views and the notification inbox."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from solfeed.api.deps import get_current_user, get_db
from solfeed.models.user import User
from solfeed.realtime.bus import bus, post_topic, user_topic
from solfeed.realtime.sse import event_stream
from solfeed.services.post_service import resolve_target

router = APIRouter(prefix="/events", tags=["events"])

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


@router.get("/posts/{post_id}")
async def post_events(
    post_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Comment and counter events for a post. A repost streams its original's events."""
    target = await resolve_target(db, post_id)
    if not target:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    topic = post_topic(target.id)
    # Release the connection; the stream can stay open for a long time
    await db.commit()
    return StreamingResponse(event_stream(bus, topic), media_type="text/event-stream", headers=SSE_HEADERS)


@router.get("/notifications")
async def notification_events(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    topic = user_topic(current_user.id)
    await db.commit()
    return StreamingResponse(event_stream(bus, topic), media_type="text/event-stream", headers=SSE_HEADERS)
