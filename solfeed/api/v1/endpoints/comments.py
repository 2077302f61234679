"""Comments and comment counts."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from solfeed.api.deps import get_current_user, get_db
from solfeed.models.user import User
from solfeed.realtime.bus import Event, bus, post_topic
from solfeed.schemas.comment import (
    CommentBatchCountRequest,
    CommentBatchCountResponse,
    CommentCountItem,
    CommentCountResponse,
    CommentCreate,
    CommentCreatedResponse,
    CommentDeletedResponse,
    CommentListResponse,
)
from solfeed.services import comment_service, counter_service, notification_service
from solfeed.services.counter_service import counters_event

router = APIRouter(prefix="/comments", tags=["comments"])


@router.post("", response_model=CommentCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    created = await comment_service.create_comment(db, data.post_id, current_user, data.content)
    if not created:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    comment, count, notification = created
    counters = await counter_service.snapshot(db, comment.post_id)
    await db.commit()

    notification_service.deliver(notification)
    topic = post_topic(comment.post_id)
    bus.publish(topic, Event("new-comment", comment_service.comment_event(comment)))
    if counters is not None:
        bus.publish(topic, Event("post-counters", counters_event(counters)))
    return CommentCreatedResponse(comment=comment_service.comment_to_response(comment), comments_count=count)


@router.get("", response_model=CommentListResponse)
async def list_comments(
    post_id: UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    listed = await comment_service.list_comments(db, post_id, skip=skip, limit=limit)
    if listed is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    target_id, comments = listed
    counted = await comment_service.count_comments(db, target_id)
    return CommentListResponse(
        comments=[comment_service.comment_to_response(c) for c in comments],
        total=counted[1] if counted else 0,
    )


@router.get("/count", response_model=CommentCountResponse)
async def comment_count(
    post_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    counted = await comment_service.count_comments(db, post_id)
    if counted is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    target_id, count = counted
    return CommentCountResponse(post_id=target_id, count=count)


@router.post("/batch-count", response_model=CommentBatchCountResponse)
async def comment_batch_count(
    data: CommentBatchCountRequest,
    db: AsyncSession = Depends(get_db),
):
    counts = await comment_service.batch_counts(db, data.post_ids)
    return CommentBatchCountResponse(
        counts=[CommentCountItem(post_id=pid, count=counts[pid]) for pid in data.post_ids if pid in counts]
    )


@router.delete("/{comment_id}", response_model=CommentDeletedResponse)
async def delete_comment(
    comment_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.get_comment(db, comment_id)
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    if not comment_service.can_delete(comment, current_user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to delete this comment")
    count = await comment_service.soft_delete_comment(db, comment)
    if count is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    counters = await counter_service.snapshot(db, comment.post_id)
    await db.commit()

    topic = post_topic(comment.post_id)
    bus.publish(topic, Event("delete-comment", {"post_id": str(comment.post_id), "id": str(comment.id)}))
    if counters is not None:
        bus.publish(topic, Event("post-counters", counters_event(counters)))
    return CommentDeletedResponse(post_id=comment.post_id, comments_count=count)
