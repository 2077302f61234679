"""Tips. The transfer itself happens elsewhere; we only record who sent what and notify."""
import logging
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from solfeed.models.notification import Notification, NotificationType
from solfeed.models.user import User
from solfeed.schemas.notification import TipResponse
from solfeed.schemas.user import UserPublic
from solfeed.services import notification_service

logger = logging.getLogger(__name__)


class SelfTipError(ValueError):
    pass


async def record_tip(
    db: AsyncSession,
    sender: User,
    recipient_id: UUID,
    amount: float,
    signature: str,
) -> Notification:
    """Raise the ``transaction`` notification for a completed transfer identified by ``signature``."""
    if sender.id == recipient_id:
        raise SelfTipError("Cannot tip yourself")
    if amount <= 0:
        raise ValueError("Tip amount must be positive")
    notification = await notification_service.notify(
        db,
        NotificationType.TRANSACTION,
        recipient_id=recipient_id,
        actor_id=sender.id,
        message=f"{sender.public_name} sent you {float(amount):.2f} SOL",
        amount=amount,
        entity_id=signature,
        entity_type="Transaction",
    )
    logger.info("Tip of %.2f SOL from %s to %s recorded (%s)", amount, sender.id, recipient_id, signature)
    return notification


async def list_tips(
    db: AsyncSession,
    user_id: UUID,
    *,
    sent: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Notification], int]:
    """Tips received by (or, with ``sent``, sent by) a user, newest first, plus the total."""
    party = Notification.actor_id if sent else Notification.user_id
    where = (
        party == user_id,
        Notification.type == NotificationType.TRANSACTION,
        Notification.deleted_at.is_(None),
    )
    total = (await db.execute(select(func.count(Notification.id)).where(*where))).scalar() or 0
    result = await db.execute(
        select(Notification)
        .where(*where)
        .order_by(desc(Notification.created_at))
        .offset(skip)
        .limit(limit)
        .options(selectinload(Notification.actor), selectinload(Notification.user))
    )
    return list(result.scalars().all()), total


def tip_to_response(notification: Notification) -> TipResponse:
    return TipResponse(
        id=notification.id,
        sender=UserPublic.model_validate(notification.actor) if notification.actor else None,
        recipient=UserPublic.model_validate(notification.user) if notification.user else None,
        amount=notification.amount or 0.0,
        signature=notification.entity_id,
        created_at=notification.created_at,
    )
