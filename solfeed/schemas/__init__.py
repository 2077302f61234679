from solfeed.schemas.user import UserPublic, FollowResponse
from solfeed.schemas.post import (
    PostCreate,
    PostResponse,
    LikeToggleResponse,
    RepostToggleResponse,
)
from solfeed.schemas.comment import CommentCreate, CommentResponse
from solfeed.schemas.notification import NotificationResponse, NotificationListResponse, TipCreate
