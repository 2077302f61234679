"""Notifications API."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from solfeed.api.deps import get_current_user, get_db
from solfeed.models.notification import NotificationType
from solfeed.models.user import User
from solfeed.schemas.notification import NotificationListResponse, ReadStateResponse
from solfeed.services.notification_service import (
    get_notification,
    get_notifications,
    get_unread_count,
    mark_all_read,
    mark_one_read,
    notification_to_response,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    type: NotificationType | None = Query(None),
    unread_only: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await get_notifications(
        db,
        current_user.id,
        skip=skip,
        limit=limit,
        notification_type=type,
        unread_only=unread_only,
    )
    unread = await get_unread_count(db, current_user.id)
    return NotificationListResponse(
        notifications=[notification_to_response(n, actor) for n, actor in rows],
        unread_count=unread,
    )


@router.get("/unread-count")
async def unread_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await get_unread_count(db, current_user.id)
    return {"count": count}


@router.put("/mark-all-read", response_model=ReadStateResponse)
async def mark_all_as_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await mark_all_read(db, current_user.id)
    await db.commit()
    return ReadStateResponse(updated=updated, unread_count=await get_unread_count(db, current_user.id))


@router.put("/{notification_id}/read", response_model=ReadStateResponse)
async def mark_one_as_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await get_notification(db, notification_id)
    if not notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    if notification.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your notification")
    updated = await mark_one_read(db, current_user.id, notification_id)
    await db.commit()
    return ReadStateResponse(updated=int(updated), unread_count=await get_unread_count(db, current_user.id))
