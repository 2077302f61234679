"""Follow / unfollow."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from solfeed.api.deps import get_current_user, get_db
from solfeed.models.user import User
from solfeed.schemas.user import FollowResponse, UserPublic
from solfeed.services import follow_service, notification_service
from solfeed.services.follow_service import SelfFollowError

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}", response_model=UserPublic)
async def get_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    user = await follow_service.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserPublic.model_validate(user)


@router.post("/{user_id}/follow", response_model=FollowResponse)
async def follow_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not await follow_service.get_user(db, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    try:
        count, notification = await follow_service.follow(db, current_user, user_id)
    except SelfFollowError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    await db.commit()
    notification_service.deliver(notification)
    return FollowResponse(user_id=user_id, following=True, followers_count=count)


@router.delete("/{user_id}/follow", response_model=FollowResponse)
async def unfollow_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not await follow_service.get_user(db, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    count = await follow_service.unfollow(db, current_user, user_id)
    await db.commit()
    return FollowResponse(user_id=user_id, following=False, followers_count=count)
