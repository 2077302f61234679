"""Pydantic schemas for Notification and tips."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from solfeed.models.notification import NotificationType
from solfeed.schemas.user import UserPublic


class NotificationResponse(BaseModel):
    id: UUID
    user_id: UUID
    actor_id: UUID
    type: NotificationType
    message: str
    amount: float | None = None
    entity_id: str | None = None
    entity_type: str | None = None
    is_read: bool = False
    created_at: datetime
    actor: UserPublic | None = None

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


class ReadStateResponse(BaseModel):
    updated: int
    unread_count: int


class TipCreate(BaseModel):
    recipient_id: UUID
    amount: float = Field(..., gt=0)
    signature: str = Field(..., min_length=1, max_length=128)


class TipResponse(BaseModel):
    id: UUID
    sender: UserPublic | None = None
    recipient: UserPublic | None = None
    amount: float
    signature: str | None = None
    created_at: datetime


class TipListResponse(BaseModel):
    tips: list[TipResponse]
    total: int
