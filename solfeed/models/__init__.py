from solfeed.models.user import User
from solfeed.models.post import Post
from solfeed.models.comment import Comment
from solfeed.models.engagement import Follow, Like, Repost
from solfeed.models.notification import Notification, NotificationType, SelfNotificationError

__all__ = ["User", "Post", "Comment", "Follow", "Like", "Repost", "Notification", "NotificationType", "SelfNotificationError"]
