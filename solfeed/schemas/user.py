"""Pydantic schemas for User."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class UserPublic(BaseModel):
    id: UUID
    username: str
    display_name: str | None = None
    avatar_url: str | None = None
    followers_count: int = 0
    following_count: int = 0
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class FollowResponse(BaseModel):
    user_id: UUID
    following: bool
    followers_count: int
