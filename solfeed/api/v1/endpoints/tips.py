"""Tips: record a completed transfer and notify the recipient."""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from solfeed.api.deps import get_current_user, get_db
from solfeed.models.user import User
from solfeed.schemas.notification import NotificationResponse, TipCreate, TipListResponse
from solfeed.services import follow_service, notification_service
from solfeed.services.tip_service import list_tips, record_tip, tip_to_response

router = APIRouter(prefix="/tips", tags=["tips"])


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def create_tip(
    data: TipCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not await follow_service.get_user(db, data.recipient_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    try:
        notification = await record_tip(db, current_user, data.recipient_id, data.amount, data.signature)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    await db.commit()
    notification_service.deliver(notification)
    return notification_service.notification_to_response(notification, current_user)


@router.get("/received", response_model=TipListResponse)
async def tips_received(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tips, total = await list_tips(db, current_user.id, skip=skip, limit=limit)
    return TipListResponse(tips=[tip_to_response(t) for t in tips], total=total)


@router.get("/sent", response_model=TipListResponse)
async def tips_sent(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tips, total = await list_tips(db, current_user.id, sent=True, skip=skip, limit=limit)
    return TipListResponse(tips=[tip_to_response(t) for t in tips], total=total)
