"""Notification model for likes, comments, follows, reposts and tips."""
import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, Float, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import relationship, validates

from solfeed.db.session import Base


class NotificationType(str, enum.Enum):
    LIKE = "like"
    COMMENT = "comment"
    FOLLOW = "follow"
    REPOST = "repost"
    TRANSACTION = "transaction"


class SelfNotificationError(ValueError):
    """Raised when a notification would be addressed to its own actor."""


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_id_is_read", "user_id", "is_read"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    actor_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(
        Enum(NotificationType, name="notification_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    message = Column(Text, nullable=False)
    amount = Column(Float, nullable=True)  # transaction only
    entity_id = Column(String(128), nullable=True)  # post id, comment id or transaction signature
    entity_type = Column(String(30), nullable=True)  # Post | Comment | User | Transaction
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    deleted_at = Column(DateTime, nullable=True)

    user = relationship("User", foreign_keys=[user_id], back_populates="notifications")
    actor = relationship("User", foreign_keys=[actor_id])

    @validates("user_id", "actor_id")
    def _reject_self_notification(self, key, value):
        other = self.actor_id if key == "user_id" else self.user_id
        if value is not None and value == other:
            raise SelfNotificationError("User cannot notify themselves.")
        return value
