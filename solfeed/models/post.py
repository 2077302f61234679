"""Post model. A repost is its own row pointing at the original through original_post_id."""
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship

from solfeed.db.session import Base


class Post(Base):
    __tablename__ = "posts"
    __table_args__ = (
        CheckConstraint("likes_count >= 0", name="ck_posts_likes_count_non_negative"),
        CheckConstraint("reposts_count >= 0", name="ck_posts_reposts_count_non_negative"),
        CheckConstraint("comments_count >= 0", name="ck_posts_comments_count_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    original_post_id = Column(Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True, index=True)
    likes_count = Column(Integer, nullable=False, default=0)
    comments_count = Column(Integer, nullable=False, default=0)
    reposts_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="posts")
    original_post = relationship("Post", remote_side="Post.id", foreign_keys=[original_post_id])
    comments = relationship("Comment", back_populates="post", cascade="all, delete-orphan")
    likes = relationship("Like", back_populates="post", cascade="all, delete-orphan")
    reposts = relationship(
        "Repost",
        back_populates="post",
        foreign_keys="Repost.post_id",
        cascade="all, delete-orphan",
    )

    @property
    def is_repost(self) -> bool:
        return self.original_post_id is not None

    @property
    def counter_target_id(self) -> uuid.UUID:
        """Id whose counters this row displays and whose relations it toggles."""
        return self.original_post_id or self.id
