"""Client SDK: API access, membership cache, toggles, comment counts and push."""
from solfeed.client.api import FeedApiClient
from solfeed.client.comments import CommentCountAggregator, CommentResult
from solfeed.client.errors import (
    AuthenticationError,
    ClientError,
    ConflictError,
    NotFoundError,
    RequestValidationError,
    ServiceError,
    TransientError,
)
from solfeed.client.membership import JsonFileSessionStore, MemorySessionStore, MembershipCache, ToggleKind
from solfeed.client.push import PushChannel, iter_sse
from solfeed.client.session import ClientSession, ViewHandle
from solfeed.client.toggle import ToggleController, ToggleResult
from solfeed.client.views import PostView, ViewRegistry

__all__ = [
    "AuthenticationError",
    "ClientError",
    "ClientSession",
    "CommentCountAggregator",
    "CommentResult",
    "ConflictError",
    "FeedApiClient",
    "JsonFileSessionStore",
    "MembershipCache",
    "MemorySessionStore",
    "NotFoundError",
    "PostView",
    "PushChannel",
    "RequestValidationError",
    "ServiceError",
    "ToggleController",
    "ToggleKind",
    "ToggleResult",
    "TransientError",
    "ViewHandle",
    "ViewRegistry",
    "iter_sse",
]
