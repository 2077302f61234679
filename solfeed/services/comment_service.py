"""Comment creation, removal and counting."""
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from solfeed.models.comment import Comment
from solfeed.models.notification import Notification, NotificationType
from solfeed.models.post import Post
from solfeed.models.user import User
from solfeed.schemas.comment import CommentResponse
from solfeed.services import counter_service, notification_service
from solfeed.services.counter_service import CounterField
from solfeed.services.post_service import resolve_target, user_public

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 50


def _preview(content: str) -> str:
    return content[:PREVIEW_LENGTH] + "..." if len(content) > PREVIEW_LENGTH else content


async def create_comment(
    db: AsyncSession,
    post_id: UUID,
    user: User,
    content: str,
) -> tuple[Comment, int, Notification | None] | None:
    """Add a comment to the original behind ``post_id``. Returns (comment, new count, notification)."""
    target = await resolve_target(db, post_id)
    if target is None:
        return None
    comment = Comment(user_id=user.id, post_id=target.id, content=content)
    db.add(comment)
    await db.flush()
    comment.user = user

    count = await counter_service.adjust(db, target.id, CounterField.COMMENT, +1)
    notification = await notification_service.notify(
        db,
        NotificationType.COMMENT,
        recipient_id=target.user_id,
        actor_id=user.id,
        message=f'{user.public_name} commented: "{_preview(content)}"',
        entity_id=str(comment.id),
        entity_type="Comment",
    )
    return comment, count or 0, notification


async def get_comment(db: AsyncSession, comment_id: UUID) -> Comment | None:
    result = await db.execute(
        select(Comment)
        .where(Comment.id == comment_id, Comment.deleted_at.is_(None))
        .options(selectinload(Comment.user), selectinload(Comment.post))
    )
    return result.scalar_one_or_none()


def can_delete(comment: Comment, user_id: UUID) -> bool:
    """Comment author or the author of the post it sits on."""
    return comment.user_id == user_id or (comment.post is not None and comment.post.user_id == user_id)


async def soft_delete_comment(db: AsyncSession, comment: Comment) -> int | None:
    """Hide a comment and decrement its post's count. Returns the new count, None if it was already gone."""
    result = await db.execute(
        update(Comment)
        .where(Comment.id == comment.id, Comment.deleted_at.is_(None))
        .values(deleted_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        return None
    logger.info("Comment %s on post %s removed", comment.id, comment.post_id)
    count = await counter_service.adjust(db, comment.post_id, CounterField.COMMENT, -1)
    if count is None:
        # Post was deleted in the meantime; report what the row still holds
        counters = await counter_service.snapshot(db, comment.post_id)
        return counters.comments if counters else 0
    return count


async def list_comments(
    db: AsyncSession,
    post_id: UUID,
    skip: int = 0,
    limit: int = 50,
) -> tuple[UUID, list[Comment]] | None:
    """Visible comments on the original behind ``post_id``, newest first."""
    target = await resolve_target(db, post_id)
    if target is None:
        return None
    result = await db.execute(
        select(Comment)
        .where(Comment.post_id == target.id, Comment.deleted_at.is_(None))
        .order_by(desc(Comment.created_at))
        .offset(skip)
        .limit(limit)
        .options(selectinload(Comment.user))
    )
    return target.id, list(result.scalars().all())


async def count_comments(db: AsyncSession, post_id: UUID) -> tuple[UUID, int] | None:
    """Comment count as stored on the post. Reposts report their original's count."""
    target = await resolve_target(db, post_id)
    if target is None:
        return None
    counters = await counter_service.snapshot(db, target.id)
    return target.id, counters.comments if counters else 0


async def batch_counts(db: AsyncSession, post_ids: list[UUID]) -> dict[UUID, int]:
    """Counts for many posts in two queries, keyed by the id the caller asked about.

    Unknown or deleted ids are left out.
    """
    if not post_ids:
        return {}
    result = await db.execute(
        select(Post.id, Post.original_post_id).where(Post.id.in_(post_ids), Post.deleted_at.is_(None))
    )
    target_of = {row[0]: row[1] or row[0] for row in result.all()}
    counters = await counter_service.snapshot_many(db, list(set(target_of.values())))
    return {pid: counters[target].comments for pid, target in target_of.items() if target in counters}


def comment_to_response(comment: Comment) -> CommentResponse:
    user = comment.user
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        content=comment.content,
        created_at=comment.created_at,
        author=user.public_name if user else "Unknown",
        user=user_public(user),
    )


def comment_event(comment: Comment) -> dict:
    user = comment.user
    return {
        "post_id": str(comment.post_id),
        "id": str(comment.id),
        "author": user.public_name if user else "Unknown",
        "content": comment.content,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
    }
