"""Follow relations and the follower/following counters on users."""
import logging
from uuid import UUID

from sqlalchemy import case, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from solfeed.db.session import dialect_insert
from solfeed.models.engagement import Follow
from solfeed.models.notification import Notification, NotificationType
from solfeed.models.user import User
from solfeed.services import notification_service

logger = logging.getLogger(__name__)


class SelfFollowError(ValueError):
    pass


async def get_user(db: AsyncSession, user_id: UUID) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def _bump(db: AsyncSession, column, user_id: UUID, delta: int) -> int:
    stmt = (
        update(User)
        .where(User.id == user_id)
        .values({column.key: case((column + delta < 0, 0), else_=column + delta)})
        .returning(column)
        .execution_options(synchronize_session=False)
    )
    return (await db.execute(stmt)).scalar_one_or_none() or 0


async def followers_count(db: AsyncSession, user_id: UUID) -> int:
    result = await db.execute(select(User.followers_count).where(User.id == user_id))
    return result.scalar() or 0


async def follow(db: AsyncSession, follower: User, following_id: UUID) -> tuple[int, Notification | None]:
    """Follow ``following_id``. Returns (followers count, notification). Following twice is a no-op."""
    if follower.id == following_id:
        raise SelfFollowError("Cannot follow yourself")
    stmt = (
        dialect_insert(db)(Follow)
        .values(follower_id=follower.id, following_id=following_id)
        .on_conflict_do_nothing(index_elements=["follower_id", "following_id"])
        .returning(Follow.follower_id)
    )
    inserted = (await db.execute(stmt)).scalar_one_or_none()
    if inserted is None:
        return await followers_count(db, following_id), None
    logger.info("User %s now follows %s", follower.id, following_id)

    await _bump(db, User.following_count, follower.id, +1)
    count = await _bump(db, User.followers_count, following_id, +1)
    notification = await notification_service.notify(
        db,
        NotificationType.FOLLOW,
        recipient_id=following_id,
        actor_id=follower.id,
        message=f"{follower.public_name} started following you",
        entity_id=str(follower.id),
        entity_type="User",
    )
    return count, notification


async def unfollow(db: AsyncSession, follower: User, following_id: UUID) -> int:
    result = await db.execute(
        delete(Follow)
        .where(Follow.follower_id == follower.id, Follow.following_id == following_id)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        return await followers_count(db, following_id)
    await _bump(db, User.following_count, follower.id, -1)
    return await _bump(db, User.followers_count, following_id, -1)
