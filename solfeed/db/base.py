"""SQLAlchemy declarative base and model imports for Alembic."""
from solfeed.db.session import Base  # noqa: F401
from solfeed.models.user import User  # noqa: F401
from solfeed.models.post import Post  # noqa: F401
from solfeed.models.comment import Comment  # noqa: F401
from solfeed.models.engagement import Follow, Like, Repost  # noqa: F401
from solfeed.models.notification import Notification  # noqa: F401

__all__ = ["Base", "User", "Post", "Comment", "Follow", "Like", "Repost", "Notification"]
