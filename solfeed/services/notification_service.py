"""Notification fan-out: creation, message synthesis, delivery and read state."""
import logging
from datetime import datetime
from typing import assert_never
from uuid import UUID

from kombu.exceptions import OperationalError
from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from solfeed.core.config import settings
from solfeed.models.notification import Notification, NotificationType
from solfeed.models.user import User
from solfeed.realtime.bus import Event, bus, user_topic
from solfeed.schemas.notification import NotificationResponse
from solfeed.schemas.user import UserPublic

logger = logging.getLogger(__name__)


def synthesize_message(notification_type: NotificationType, amount: float | None = None) -> str:
    """Default message for a notification that was created without one."""
    match notification_type:
        case NotificationType.LIKE:
            return "Your post was liked."
        case NotificationType.COMMENT:
            return "Your post received a comment."
        case NotificationType.FOLLOW:
            return "You have a new follower."
        case NotificationType.REPOST:
            return "Your post was reposted."
        case NotificationType.TRANSACTION:
            if amount is None:
                raise ValueError("Transaction notifications need an amount")
            return f"You received {float(amount):.2f} SOL."
        case _:
            assert_never(notification_type)


async def notify(
    db: AsyncSession,
    notification_type: NotificationType,
    *,
    recipient_id: UUID,
    actor_id: UUID,
    message: str | None = None,
    amount: float | None = None,
    entity_id: str | None = None,
    entity_type: str | None = None,
) -> Notification | None:
    """Create a notification. Skips if actor is the same as recipient (no self-notify)."""
    notification_type = NotificationType(notification_type)
    if recipient_id == actor_id:
        logger.debug("User %s acted on their own %s, no notification created", actor_id, notification_type.value)
        return None
    if notification_type is not NotificationType.TRANSACTION:
        amount = None
    notification = Notification(
        user_id=recipient_id,
        actor_id=actor_id,
        type=notification_type,
        message=message or synthesize_message(notification_type, amount),
        amount=amount,
        entity_id=entity_id,
        entity_type=entity_type,
        is_read=False,
    )
    db.add(notification)
    await db.flush()
    logger.info("Created %s notification for user %s from user %s", notification_type.value, recipient_id, actor_id)
    return notification


async def retract(db: AsyncSession, notification_id: UUID | None) -> bool:
    """Soft-delete a notification the recipient has not read yet. Read ones are left alone."""
    if notification_id is None:
        return False
    result = await db.execute(
        update(Notification)
        .where(
            Notification.id == notification_id,
            Notification.is_read == False,
            Notification.deleted_at.is_(None),
        )
        .values(deleted_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) > 0


def notification_event(notification: Notification) -> dict:
    return {
        "id": str(notification.id),
        "user_id": str(notification.user_id),
        "actor_id": str(notification.actor_id),
        "type": NotificationType(notification.type).value,
        "message": notification.message,
        "amount": notification.amount,
        "entity_id": notification.entity_id,
        "entity_type": notification.entity_type,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


def deliver(notification: Notification | None) -> None:
    """Push a committed notification. Best effort: the pull API stays authoritative either way."""
    if notification is None:
        return
    bus.publish(user_topic(notification.user_id), Event("new-notification", notification_event(notification)))
    if not settings.PUSH_ENABLED:
        return
    from solfeed.workers.notifications import send_push_notification

    try:
        send_push_notification.delay(str(notification.user_id), settings.APP_NAME, notification.message)
    except OperationalError:
        logger.warning("Push broker unavailable, notification %s left for pull delivery", notification.id, exc_info=True)


def _visible(user_id: UUID):
    return (Notification.user_id == user_id, Notification.deleted_at.is_(None))


async def get_notifications(
    db: AsyncSession,
    user_id: UUID,
    *,
    skip: int = 0,
    limit: int = 50,
    notification_type: NotificationType | None = None,
    unread_only: bool = False,
) -> list[tuple[Notification, User]]:
    """Get notifications for user, most recent first."""
    q = (
        select(Notification, User)
        .join(User, Notification.actor_id == User.id)
        .where(*_visible(user_id))
    )
    if notification_type is not None:
        q = q.where(Notification.type == notification_type)
    if unread_only:
        q = q.where(Notification.is_read == False)
    result = await db.execute(q.order_by(desc(Notification.created_at)).offset(skip).limit(limit))
    return result.all()


async def get_notification(db: AsyncSession, notification_id: UUID) -> Notification | None:
    result = await db.execute(
        select(Notification).where(Notification.id == notification_id, Notification.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def get_unread_count(db: AsyncSession, user_id: UUID) -> int:
    """Get count of unread notifications."""
    result = await db.execute(
        select(func.count(Notification.id)).where(*_visible(user_id), Notification.is_read == False)
    )
    return result.scalar() or 0


async def mark_all_read(db: AsyncSession, user_id: UUID) -> int:
    """Mark all notifications as read. Returns count updated (0 when nothing was unread)."""
    stmt = (
        update(Notification)
        .where(*_visible(user_id), Notification.is_read == False)
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount or 0


async def mark_one_read(db: AsyncSession, user_id: UUID, notification_id: UUID) -> bool:
    """Mark a single notification as read. Returns True if it was unread; already-read is a no-op."""
    stmt = (
        update(Notification)
        .where(
            Notification.id == notification_id,
            *_visible(user_id),
            Notification.is_read == False,
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return (result.rowcount or 0) > 0


def notification_to_response(notification: Notification, actor: User | None = None) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        user_id=notification.user_id,
        actor_id=notification.actor_id,
        type=notification.type,
        message=notification.message,
        amount=notification.amount,
        entity_id=notification.entity_id,
        entity_type=notification.entity_type,
        is_read=notification.is_read,
        created_at=notification.created_at,
        actor=UserPublic.model_validate(actor) if actor is not None else None,
    )
