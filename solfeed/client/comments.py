"""Comment counts shared by every view of a post.

Counts are keyed by the target (original) post id, so a comment made from a
repost card shows up on the original's card and vice versa. Push events may
arrive more than once, and our own submissions echo back over push, so every
add and delete is deduplicated by comment id.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass

from solfeed.client.api import FeedApiClient
from solfeed.client.errors import ClientError, RequestValidationError
from solfeed.client.views import ViewRegistry
from solfeed.realtime.bus import Event, EventBus, Subscription, post_topic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommentResult:
    count: int
    comment: dict | None = None
    error: ClientError | None = None


class CommentWatch:
    """Handle returned by ``CommentCountAggregator.watch``; close it when the view goes away."""

    def __init__(self, aggregator: "CommentCountAggregator", target_id: str):
        self._aggregator = aggregator
        self.target_id = target_id
        self.active = True

    def close(self) -> None:
        if not self.active:
            return
        self.active = False
        self._aggregator._release(self.target_id)

    def __enter__(self) -> "CommentWatch":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class CommentCountAggregator:
    def __init__(self, api: FeedApiClient, views: ViewRegistry, bus: EventBus):
        self.api = api
        self.views = views
        self.bus = bus
        self._counts: dict[str, int] = {}
        self._seen: dict[str, set[str]] = defaultdict(set)
        self._deleted: dict[str, set[str]] = defaultdict(set)
        self._subscriptions: dict[str, Subscription] = {}
        self._refs: dict[str, int] = defaultdict(int)

    @staticmethod
    def target_of(post_id, original_post_id=None) -> str:
        return str(original_post_id or post_id)

    def count(self, post_id, original_post_id=None) -> int:
        return self._counts.get(self.target_of(post_id, original_post_id), 0)

    def _set(self, target_id: str, count: int) -> int:
        count = max(0, int(count))
        self._counts[target_id] = count
        self.views.broadcast_comments(target_id, count)
        return count

    async def load(self, post_id, original_post_id=None) -> int | None:
        """Fetch the stored count and push it to every view of the target."""
        target_id = self.target_of(post_id, original_post_id)
        try:
            data = await self.api.comment_count(target_id)
        except ClientError as e:
            self.views.set_error(target_id, e)
            return None
        return self._set(str(data.get("post_id", target_id)), data.get("count", 0))

    def apply_new(self, payload: dict) -> bool:
        target_id = str(payload["post_id"])
        comment_id = str(payload["id"])
        if comment_id in self._seen[target_id] or comment_id in self._deleted[target_id]:
            return False
        self._seen[target_id].add(comment_id)
        self._set(target_id, self._counts.get(target_id, 0) + 1)
        return True

    def apply_deleted(self, payload: dict) -> bool:
        target_id = str(payload["post_id"])
        comment_id = str(payload["id"])
        if comment_id in self._deleted[target_id]:
            return False
        self._deleted[target_id].add(comment_id)
        self._seen[target_id].discard(comment_id)
        self._set(target_id, self._counts.get(target_id, 0) - 1)
        return True

    def apply_counters(self, payload: dict) -> None:
        target_id = str(payload["post_id"])
        self._counts[target_id] = max(0, int(payload.get("comments", 0)))
        self.views.broadcast_counters(
            target_id,
            likes=payload.get("likes", 0),
            reposts=payload.get("reposts", 0),
            comments=payload.get("comments", 0),
        )

    async def submit(self, post_id, content: str, original_post_id=None) -> CommentResult:
        target_id = self.target_of(post_id, original_post_id)
        content = (content or "").strip()
        if not content:
            return CommentResult(self.count(target_id), error=RequestValidationError("Comment cannot be empty"))
        try:
            data = await self.api.create_comment(target_id, content)
        except ClientError as e:
            self.views.set_error(target_id, e)
            return CommentResult(self.count(target_id), error=e)
        comment = data["comment"]
        # Mark as seen so the push echo of our own comment is ignored
        self._seen[target_id].add(str(comment["id"]))
        return CommentResult(self._set(target_id, data["comments_count"]), comment=comment)

    async def remove(self, comment_id, post_id, original_post_id=None) -> CommentResult:
        target_id = self.target_of(post_id, original_post_id)
        try:
            data = await self.api.delete_comment(comment_id)
        except ClientError as e:
            self.views.set_error(target_id, e)
            return CommentResult(self.count(target_id), error=e)
        self._deleted[target_id].add(str(comment_id))
        self._seen[target_id].discard(str(comment_id))
        return CommentResult(self._set(target_id, data["comments_count"]))

    def _handle(self, event: Event) -> None:
        match event.type:
            case "new-comment":
                self.apply_new(event.payload)
            case "delete-comment":
                self.apply_deleted(event.payload)
            case "post-counters":
                self.apply_counters(event.payload)
            case _:
                logger.debug("Ignoring %s event", event.type)

    def watch(self, post_id, original_post_id=None) -> CommentWatch:
        """Follow push events for the target while the returned handle is open."""
        target_id = self.target_of(post_id, original_post_id)
        if self._refs[target_id] == 0:
            self._subscriptions[target_id] = self.bus.subscribe(post_topic(target_id), self._handle)
        self._refs[target_id] += 1
        return CommentWatch(self, target_id)

    def _release(self, target_id: str) -> None:
        self._refs[target_id] -= 1
        if self._refs[target_id] > 0:
            return
        self._refs.pop(target_id, None)
        subscription = self._subscriptions.pop(target_id, None)
        if subscription is not None:
            subscription.close()
        # Nothing on screen reads this target any more; the next watch reloads it
        self._counts.pop(target_id, None)
        self._seen.pop(target_id, None)
        self._deleted.pop(target_id, None)

    def tracked(self) -> list[str]:
        """Targets with count or dedup state held in memory."""
        return sorted(set(self._counts) | set(self._seen) | set(self._deleted))

    def watching(self) -> list[str]:
        return sorted(self._subscriptions)
