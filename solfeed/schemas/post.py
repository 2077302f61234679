"""Pydantic schemas for Post and the like/repost toggles."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from solfeed.schemas.user import UserPublic


class PostCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=280)


class PostResponse(BaseModel):
    id: UUID
    user_id: UUID
    content: str
    original_post_id: UUID | None = None
    is_repost: bool = False
    likes_count: int = 0
    comments_count: int = 0
    reposts_count: int = 0
    created_at: datetime
    user: UserPublic | None = None
    is_liked: bool = False
    is_reposted: bool = False

    model_config = {"from_attributes": True}


class LikeToggleResponse(BaseModel):
    post_id: UUID  # the original post the like is counted on
    likes: int
    liked: bool


class RepostToggleResponse(BaseModel):
    post_id: UUID
    retweets: int
    retweeted: bool
    retweet_data: PostResponse | None = None


class LikedPostsResponse(BaseModel):
    liked_posts: list[UUID]


class RepostedPostsResponse(BaseModel):
    retweeted_posts: list[UUID]


class PostInteractionsResponse(BaseModel):
    post_id: UUID
    likes: list[UserPublic]
    reposts: list[UserPublic]
