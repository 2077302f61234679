"""Pydantic schemas for Comment."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from solfeed.schemas.user import UserPublic


class CommentCreate(BaseModel):
    post_id: UUID
    content: str = Field(..., min_length=1, max_length=280)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Comment cannot be empty")
        return value


class CommentResponse(BaseModel):
    id: UUID
    post_id: UUID
    user_id: UUID
    content: str
    created_at: datetime
    author: str = "Unknown"
    user: UserPublic | None = None

    model_config = {"from_attributes": True}


class CommentCreatedResponse(BaseModel):
    comment: CommentResponse
    comments_count: int


class CommentDeletedResponse(BaseModel):
    post_id: UUID
    comments_count: int


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]
    total: int


class CommentCountResponse(BaseModel):
    post_id: UUID
    count: int


class CommentBatchCountRequest(BaseModel):
    post_ids: list[UUID] = Field(default_factory=list, max_length=200)


class CommentCountItem(BaseModel):
    post_id: UUID
    count: int


class CommentBatchCountResponse(BaseModel):
    counts: list[CommentCountItem]
