"""Signed-in client session: owns the cache, the view registry and the controllers."""
import logging

from solfeed.client.api import FeedApiClient
from solfeed.client.comments import CommentCountAggregator, CommentWatch
from solfeed.client.errors import ClientError
from solfeed.client.membership import MembershipCache, SessionStore, ToggleKind
from solfeed.client.push import PushChannel
from solfeed.client.toggle import ToggleController
from solfeed.client.views import PostView, ViewRegistry
from solfeed.realtime.bus import EventBus

logger = logging.getLogger(__name__)


class ViewHandle:
    def __init__(self, session: "ClientSession", view: PostView, watch: CommentWatch):
        self.session = session
        self.view = view
        self._watch = watch

    def close(self) -> None:
        self._watch.close()
        self.session.views.unmount(self.view)

    def __enter__(self) -> PostView:
        return self.view

    def __exit__(self, *exc_info) -> None:
        self.close()


class ClientSession:
    def __init__(
        self,
        api: FeedApiClient,
        user_id,
        *,
        store: SessionStore | None = None,
        bus: EventBus | None = None,
        debounce_seconds: float | None = None,
    ):
        self.api = api
        self.user_id = str(user_id)
        self.bus = bus or EventBus()
        self.cache = MembershipCache(self.user_id, store)
        self.views = ViewRegistry()
        self.toggles = ToggleController(api, self.cache, self.views, debounce_seconds=debounce_seconds)
        self.comments = CommentCountAggregator(api, self.views, self.bus)
        self.push = PushChannel(api, self.bus)

    async def rebuild(self) -> ClientError | None:
        """Replace the membership cache with the server's view of it."""
        try:
            liked = await self.api.liked_posts()
            reposted = await self.api.reposted_posts()
        except ClientError as e:
            logger.warning("Membership rebuild failed, keeping cached state: %s", e)
            return e
        self.cache.replace(ToggleKind.LIKE, liked)
        self.cache.replace(ToggleKind.REPOST, reposted)
        return None

    def open_view(self, post: dict) -> ViewHandle:
        """Mount a view for a post as returned by the API and start following its comments."""
        view = PostView(
            post_id=post["id"],
            original_post_id=post.get("original_post_id"),
            likes=post.get("likes_count", 0),
            reposts=post.get("reposts_count", 0),
            comments=post.get("comments_count", 0),
        )
        view.liked = self.cache.has(ToggleKind.LIKE, view.target_id)
        view.reposted = self.cache.has(ToggleKind.REPOST, view.target_id)
        self.views.mount(view)
        return ViewHandle(self, view, self.comments.watch(view.target_id))

    async def aclose(self) -> None:
        await self.api.aclose()
