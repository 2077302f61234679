"""Client-side registry of rendered post views.

The same post can be on screen several times at once (feed card, detail
modal, explore grid tile, and any repost of it). All of them key on the
target post id, so one broadcast updates every copy.
"""
import itertools
from dataclasses import dataclass, field

from solfeed.client.errors import ClientError
from solfeed.client.membership import ToggleKind

_view_ids = itertools.count(1)


@dataclass
class PostView:
    post_id: str
    original_post_id: str | None = None
    likes: int = 0
    reposts: int = 0
    comments: int = 0
    liked: bool = False
    reposted: bool = False
    pending: set[ToggleKind] = field(default_factory=set)
    error: ClientError | None = None
    view_id: int = field(default_factory=lambda: next(_view_ids))

    def __post_init__(self):
        self.post_id = str(self.post_id)
        if self.original_post_id is not None:
            self.original_post_id = str(self.original_post_id)

    @property
    def target_id(self) -> str:
        """Id the counters and relations live on: the original for a repost."""
        return self.original_post_id or self.post_id

    def count_for(self, kind: ToggleKind) -> int:
        return self.likes if kind is ToggleKind.LIKE else self.reposts

    def state_for(self, kind: ToggleKind) -> bool:
        return self.liked if kind is ToggleKind.LIKE else self.reposted

    def apply(self, kind: ToggleKind, active: bool, count: int) -> None:
        if kind is ToggleKind.LIKE:
            self.liked, self.likes = active, max(0, count)
        else:
            self.reposted, self.reposts = active, max(0, count)


class ViewRegistry:
    def __init__(self):
        self._views: dict[int, PostView] = {}

    def mount(self, view: PostView) -> PostView:
        self._views[view.view_id] = view
        return view

    def unmount(self, view: PostView | int) -> None:
        view_id = view.view_id if isinstance(view, PostView) else view
        self._views.pop(view_id, None)

    def views_for(self, target_id) -> list[PostView]:
        target_id = str(target_id)
        return [v for v in self._views.values() if v.target_id == target_id]

    def __len__(self) -> int:
        return len(self._views)

    def broadcast_toggle(self, target_id, kind: ToggleKind, active: bool, count: int) -> int:
        views = self.views_for(target_id)
        for view in views:
            view.apply(kind, active, count)
        return len(views)

    def broadcast_comments(self, target_id, count: int) -> int:
        views = self.views_for(target_id)
        for view in views:
            view.comments = max(0, count)
        return len(views)

    def broadcast_counters(self, target_id, *, likes: int, reposts: int, comments: int) -> int:
        views = self.views_for(target_id)
        for view in views:
            view.likes, view.reposts, view.comments = max(0, likes), max(0, reposts), max(0, comments)
        return len(views)

    def set_pending(self, target_id, kind: ToggleKind, pending: bool) -> None:
        for view in self.views_for(target_id):
            if pending:
                view.pending.add(kind)
            else:
                view.pending.discard(kind)

    def set_error(self, target_id, error: ClientError | None) -> None:
        for view in self.views_for(target_id):
            view.error = error
