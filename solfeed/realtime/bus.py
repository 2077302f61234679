"""In-process publish/subscribe bus.

Used on the server to fan events out to open SSE streams, and on the client to
dispatch pushed events to the views that care about them. Delivery is
at-least-once from the consumers' point of view: handlers must be idempotent.

Subscriptions are explicit handles. Whoever calls ``subscribe`` owns the
returned ``Subscription`` and must ``close()`` it (or use it as a context
manager) when the view it serves goes away. A handler reached after its
subscription was closed is skipped, so a publish racing a teardown is harmless.
"""
import itertools
import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    type: str
    payload: dict[str, Any] = field(default_factory=dict)


Handler = Callable[[Event], None]


def post_topic(post_id: UUID | str) -> str:
    return f"post:{post_id}"


def user_topic(user_id: UUID | str) -> str:
    return f"user:{user_id}"


class Subscription:
    def __init__(self, bus: "EventBus", topic: str, token: int, handler: Handler):
        self._bus = bus
        self.topic = topic
        self._token = token
        self._handler = handler
        self.active = True

    def deliver(self, event: Event) -> bool:
        if not self.active:
            return False
        self._handler(event)
        return True

    def close(self) -> None:
        if not self.active:
            return
        self.active = False
        self._bus._remove(self.topic, self._token)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class EventBus:
    def __init__(self):
        self._subscriptions: dict[str, dict[int, Subscription]] = defaultdict(dict)
        self._tokens = itertools.count(1)

    def subscribe(self, topic: str, handler: Handler) -> Subscription:
        token = next(self._tokens)
        subscription = Subscription(self, topic, token, handler)
        self._subscriptions[topic][token] = subscription
        return subscription

    def publish(self, topic: str, event: Event) -> int:
        """Deliver ``event`` to every live subscriber of ``topic``. Returns how many handlers ran."""
        delivered = 0
        # Snapshot: handlers may close their own (or other) subscriptions while we iterate
        for subscription in list(self._subscriptions.get(topic, {}).values()):
            try:
                if subscription.deliver(event):
                    delivered += 1
            except Exception:
                logger.exception("Handler for %s failed on %s event", topic, event.type)
        return delivered

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscriptions.get(topic, {}))

    def _remove(self, topic: str, token: int) -> None:
        handlers = self._subscriptions.get(topic)
        if not handlers:
            return
        handlers.pop(token, None)
        if not handlers:
            self._subscriptions.pop(topic, None)


# Process-wide bus for the API server. For multi-process deployments swap with Redis pub/sub.
bus = EventBus()
