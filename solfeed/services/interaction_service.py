"""Like and repost toggles against the relationship store.

Each mutation is idempotent under retries and concurrent duplicates: the
insert is ``ON CONFLICT DO NOTHING`` on the unique (user, post) pair and the
delete checks its rowcount, and only the request that actually changed a row
touches the counter or raises a notification.

Interactions on a repost row are applied to the original post.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from solfeed.db.session import dialect_insert
from solfeed.models.engagement import Like, Repost
from solfeed.models.notification import Notification, NotificationType
from solfeed.models.post import Post
from solfeed.models.user import User
from solfeed.services import counter_service, notification_service
from solfeed.services.counter_service import CounterField
from solfeed.services.post_service import resolve_target

logger = logging.getLogger(__name__)


@dataclass
class InteractionResult:
    post_id: UUID  # the original post the relation is counted on
    active: bool
    count: int
    changed: bool
    notification: Notification | None = None
    repost_post: Post | None = None


async def _insert_relation(db: AsyncSession, model, user_id: UUID, post_id: UUID) -> UUID | None:
    """Insert a (user, post) relation. Returns the new row id, or None when it already existed."""
    stmt = (
        dialect_insert(db)(model)
        .values(user_id=user_id, post_id=post_id)
        .on_conflict_do_nothing(index_elements=["user_id", "post_id"])
        .returning(model.id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def _current_count(db: AsyncSession, post_id: UUID, field: CounterField) -> int:
    counters = await counter_service.snapshot(db, post_id)
    return counters.for_field(field) if counters else 0


async def like_post(db: AsyncSession, post_id: UUID, user: User) -> InteractionResult | None:
    target = await resolve_target(db, post_id)
    if target is None:
        return None
    like_id = await _insert_relation(db, Like, user.id, target.id)
    if like_id is None:
        logger.debug("User %s already likes post %s", user.id, target.id)
        count = await _current_count(db, target.id, CounterField.LIKE)
        return InteractionResult(post_id=target.id, active=True, count=count, changed=False)

    count = await counter_service.adjust(db, target.id, CounterField.LIKE, +1)
    notification = await notification_service.notify(
        db,
        NotificationType.LIKE,
        recipient_id=target.user_id,
        actor_id=user.id,
        entity_id=str(target.id),
        entity_type="Post",
    )
    if notification is not None:
        await db.execute(
            update(Like)
            .where(Like.id == like_id)
            .values(notification_id=notification.id)
            .execution_options(synchronize_session=False)
        )
    return InteractionResult(
        post_id=target.id, active=True, count=count or 0, changed=True, notification=notification
    )


async def unlike_post(db: AsyncSession, post_id: UUID, user: User) -> InteractionResult | None:
    target = await resolve_target(db, post_id)
    if target is None:
        return None
    result = await db.execute(
        delete(Like)
        .where(Like.user_id == user.id, Like.post_id == target.id)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        count = await _current_count(db, target.id, CounterField.LIKE)
        return InteractionResult(post_id=target.id, active=False, count=count, changed=False)
    count = await counter_service.adjust(db, target.id, CounterField.LIKE, -1)
    return InteractionResult(post_id=target.id, active=False, count=count or 0, changed=True)


async def repost_post(db: AsyncSession, post_id: UUID, user: User) -> InteractionResult | None:
    """Repost the original behind ``post_id``: relation row, derived Post row, counter, notification."""
    target = await resolve_target(db, post_id)
    if target is None:
        return None
    repost_id = await _insert_relation(db, Repost, user.id, target.id)
    if repost_id is None:
        logger.debug("User %s already reposted post %s", user.id, target.id)
        count = await _current_count(db, target.id, CounterField.REPOST)
        return InteractionResult(post_id=target.id, active=True, count=count, changed=False)

    repost_post = Post(user_id=user.id, content=target.content, original_post_id=target.id)
    db.add(repost_post)
    await db.flush()
    repost_post.user = user
    repost_post.original_post = target

    count = await counter_service.adjust(db, target.id, CounterField.REPOST, +1)
    notification = await notification_service.notify(
        db,
        NotificationType.REPOST,
        recipient_id=target.user_id,
        actor_id=user.id,
        entity_id=str(target.id),
        entity_type="Post",
    )
    await db.execute(
        update(Repost)
        .where(Repost.id == repost_id)
        .values(
            repost_post_id=repost_post.id,
            notification_id=notification.id if notification is not None else None,
        )
        .execution_options(synchronize_session=False)
    )
    return InteractionResult(
        post_id=target.id,
        active=True,
        count=count or 0,
        changed=True,
        notification=notification,
        repost_post=repost_post,
    )


async def unrepost_post(db: AsyncSession, post_id: UUID, user: User) -> InteractionResult | None:
    """Undo a repost: drop the relation, hide the derived row, retract the unread notification."""
    target = await resolve_target(db, post_id)
    if target is None:
        return None
    result = await db.execute(
        select(Repost.id, Repost.repost_post_id, Repost.notification_id).where(
            Repost.user_id == user.id, Repost.post_id == target.id
        )
    )
    row = result.one_or_none()
    deleted = 0
    if row is not None:
        deleted = (
            await db.execute(
                delete(Repost).where(Repost.id == row.id).execution_options(synchronize_session=False)
            )
        ).rowcount
    if not deleted:
        count = await _current_count(db, target.id, CounterField.REPOST)
        return InteractionResult(post_id=target.id, active=False, count=count, changed=False)

    if row.repost_post_id is not None:
        await db.execute(
            update(Post)
            .where(Post.id == row.repost_post_id, Post.deleted_at.is_(None))
            .values(deleted_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
    count = await counter_service.adjust(db, target.id, CounterField.REPOST, -1)
    if await notification_service.retract(db, row.notification_id):
        logger.info("Retracted unread repost notification %s", row.notification_id)
    return InteractionResult(post_id=target.id, active=False, count=count or 0, changed=True)
