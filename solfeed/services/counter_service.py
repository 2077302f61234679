"""Denormalized like/repost/comment counters on posts.

Every adjustment is a single UPDATE with the arithmetic done by the database,
so two users acting on the same post at once cannot lose an update, and the
CASE floor keeps a late or replayed decrement from driving a counter negative.
"""
import enum
import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from solfeed.models.comment import Comment
from solfeed.models.engagement import Like, Repost
from solfeed.models.post import Post

logger = logging.getLogger(__name__)


class CounterField(str, enum.Enum):
    LIKE = "like"
    REPOST = "repost"
    COMMENT = "comment"


_COLUMNS = {
    CounterField.LIKE: Post.likes_count,
    CounterField.REPOST: Post.reposts_count,
    CounterField.COMMENT: Post.comments_count,
}


@dataclass(frozen=True)
class PostCounters:
    post_id: UUID
    likes: int
    reposts: int
    comments: int

    def for_field(self, field: CounterField) -> int:
        return {
            CounterField.LIKE: self.likes,
            CounterField.REPOST: self.reposts,
            CounterField.COMMENT: self.comments,
        }[field]


async def adjust(db: AsyncSession, post_id: UUID, field: CounterField, delta: int) -> int | None:
    """Atomically add ``delta`` (+1 or -1) to a counter. Returns the new value, or None if the post is gone."""
    if delta not in (1, -1):
        raise ValueError(f"Counter delta must be +1 or -1, got {delta}")
    field = CounterField(field)
    column = _COLUMNS[field]
    stmt = (
        update(Post)
        .where(Post.id == post_id, Post.deleted_at.is_(None))
        .values({column.key: case((column + delta < 0, 0), else_=column + delta)})
        .returning(column)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    value = result.scalar_one_or_none()
    if value is None:
        logger.info("Counter %s not adjusted: post %s missing or deleted", field.value, post_id)
    return value


async def snapshot(db: AsyncSession, post_id: UUID) -> PostCounters | None:
    """Current counters straight from the row (bypasses any stale ORM state in the session)."""
    result = await db.execute(
        select(Post.id, Post.likes_count, Post.reposts_count, Post.comments_count).where(
            Post.id == post_id,
            Post.deleted_at.is_(None),
        )
    )
    row = result.one_or_none()
    if row is None:
        return None
    return PostCounters(post_id=row[0], likes=row[1] or 0, reposts=row[2] or 0, comments=row[3] or 0)


async def snapshot_many(db: AsyncSession, post_ids: list[UUID]) -> dict[UUID, PostCounters]:
    if not post_ids:
        return {}
    result = await db.execute(
        select(Post.id, Post.likes_count, Post.reposts_count, Post.comments_count).where(
            Post.id.in_(post_ids),
            Post.deleted_at.is_(None),
        )
    )
    return {
        row[0]: PostCounters(post_id=row[0], likes=row[1] or 0, reposts=row[2] or 0, comments=row[3] or 0)
        for row in result.all()
    }


async def reconcile(db: AsyncSession, post_id: UUID | None = None) -> int:
    """Recompute counters from the relation tables. Returns how many posts were out of sync."""
    likes_sq = select(func.count(Like.id)).where(Like.post_id == Post.id).correlate(Post).scalar_subquery()
    reposts_sq = select(func.count(Repost.id)).where(Repost.post_id == Post.id).correlate(Post).scalar_subquery()
    comments_sq = (
        select(func.count(Comment.id))
        .where(Comment.post_id == Post.id, Comment.deleted_at.is_(None))
        .correlate(Post)
        .scalar_subquery()
    )
    stmt = (
        update(Post)
        .where(
            Post.original_post_id.is_(None),
            (Post.likes_count != likes_sq) | (Post.reposts_count != reposts_sq) | (Post.comments_count != comments_sq),
        )
        .values(likes_count=likes_sq, reposts_count=reposts_sq, comments_count=comments_sq)
        .execution_options(synchronize_session=False)
    )
    if post_id is not None:
        stmt = stmt.where(Post.id == post_id)
    result = await db.execute(stmt)
    corrected = result.rowcount or 0
    if corrected:
        logger.warning("Reconciled counters on %d post(s)", corrected)
    return corrected


def counters_event(counters: PostCounters) -> dict:
    return {
        "post_id": str(counters.post_id),
        "likes": counters.likes,
        "reposts": counters.reposts,
        "comments": counters.comments,
    }
