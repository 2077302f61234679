"""Like / repost toggles with optimistic updates.

A tap flips the cached state and every mounted view of the target at once,
then sends one request. The server's answer is the source of truth: on
success the views are reconciled to the returned count, on failure the
optimistic change is rolled back and the error is recorded on the views.
Nothing raises into the caller; the outcome is always a ``ToggleResult``.

Repeated taps on the same (kind, target) are dropped while a request is in
flight and for ``debounce_seconds`` after the last dispatch.
"""
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from solfeed.client.api import FeedApiClient
from solfeed.client.config import client_settings
from solfeed.client.errors import AuthenticationError, ClientError, ConflictError, ServiceError
from solfeed.client.membership import MembershipCache, ToggleKind
from solfeed.client.views import ViewRegistry

logger = logging.getLogger(__name__)

__all__ = ["ToggleController", "ToggleKind", "ToggleResult"]


@dataclass(frozen=True)
class ToggleResult:
    new_state: bool
    new_count: int
    dispatched: bool = True
    error: ClientError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ToggleController:
    def __init__(
        self,
        api: FeedApiClient,
        cache: MembershipCache,
        views: ViewRegistry,
        *,
        debounce_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.api = api
        self.cache = cache
        self.views = views
        self.debounce_seconds = (
            debounce_seconds if debounce_seconds is not None else client_settings.TOGGLE_DEBOUNCE_SECONDS
        )
        self._clock = clock
        self._in_flight: set[tuple[ToggleKind, str]] = set()
        self._last_dispatch: dict[tuple[ToggleKind, str], float] = {}

    def _current_count(self, kind: ToggleKind, target_id: str) -> int:
        views = self.views.views_for(target_id)
        return views[0].count_for(kind) if views else 0

    def _prune(self, now: float) -> None:
        expired = [k for k, last in self._last_dispatch.items() if now - last >= self.debounce_seconds]
        for key in expired:
            del self._last_dispatch[key]

    def _dropped(self, key: tuple[ToggleKind, str]) -> bool:
        if key in self._in_flight:
            return True
        now = self._clock()
        self._prune(now)
        last = self._last_dispatch.get(key)
        return last is not None and now - last < self.debounce_seconds

    def debouncing(self) -> list[tuple[ToggleKind, str]]:
        """Keys still inside their debounce window as of the last tap."""
        return sorted(self._last_dispatch, key=lambda k: (k[0].value, k[1]))

    async def _send(self, kind: ToggleKind, target_id: str, activate: bool) -> tuple[bool, int]:
        if kind is ToggleKind.LIKE:
            data = await (self.api.like(target_id) if activate else self.api.unlike(target_id))
            state_key, count_key = "liked", "likes"
        else:
            data = await (self.api.repost(target_id) if activate else self.api.unrepost(target_id))
            state_key, count_key = "retweeted", "retweets"
        try:
            return bool(data[state_key]), int(data[count_key])
        except (KeyError, TypeError, ValueError) as e:
            raise ServiceError(f"Unexpected {kind.value} response") from e

    async def toggle(self, kind: ToggleKind, post_id, original_post_id=None) -> ToggleResult:
        kind = ToggleKind(kind)
        target_id = str(original_post_id or post_id)
        key = (kind, target_id)
        was_active = self.cache.has(kind, target_id)
        before_count = self._current_count(kind, target_id)

        if not self.api.token:
            error = AuthenticationError("Sign in to interact with posts")
            self.views.set_error(target_id, error)
            return ToggleResult(was_active, before_count, dispatched=False, error=error)
        if self._dropped(key):
            logger.debug("Dropped repeated %s toggle on %s", kind.value, target_id)
            return ToggleResult(was_active, before_count, dispatched=False)

        self._in_flight.add(key)
        self._last_dispatch[key] = self._clock()
        activate = not was_active
        optimistic_count = max(0, before_count + (1 if activate else -1))
        self.cache.set(kind, target_id, activate)
        self.views.broadcast_toggle(target_id, kind, activate, optimistic_count)
        self.views.set_pending(target_id, kind, True)
        self.views.set_error(target_id, None)
        try:
            new_state, new_count = await self._send(kind, target_id, activate)
        except ConflictError:
            # Relation already in the requested state server side
            new_state, new_count = activate, optimistic_count
        except ClientError as e:
            logger.info("%s toggle on %s failed: %s", kind.value, target_id, e)
            self.cache.set(kind, target_id, was_active)
            self.views.broadcast_toggle(target_id, kind, was_active, before_count)
            self.views.set_error(target_id, e)
            return ToggleResult(was_active, before_count, dispatched=True, error=e)
        finally:
            self._in_flight.discard(key)
            self.views.set_pending(target_id, kind, False)

        self.cache.set(kind, target_id, new_state)
        self.views.broadcast_toggle(target_id, kind, new_state, new_count)
        return ToggleResult(new_state, new_count)

    async def like(self, post_id, original_post_id=None) -> ToggleResult:
        return await self.toggle(ToggleKind.LIKE, post_id, original_post_id)

    async def repost(self, post_id, original_post_id=None) -> ToggleResult:
        return await self.toggle(ToggleKind.REPOST, post_id, original_post_id)
