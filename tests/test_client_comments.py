"""Comment count aggregation across views, plus the push relay feeding it."""
import json

import httpx
import pytest

from solfeed.client.api import FeedApiClient
from solfeed.client.comments import CommentCountAggregator
from solfeed.client.errors import RequestValidationError
from solfeed.client.push import PushChannel, iter_sse
from solfeed.client.views import PostView, ViewRegistry
from solfeed.realtime.bus import Event, EventBus, post_topic


def comment_server(requests: list, count: int = 0):
    state = {"count": count, "next": 1}

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append((request.method, request.url.path))
        if request.url.path.endswith("/comments/count"):
            return httpx.Response(200, json={"post_id": request.url.params["post_id"], "count": state["count"]})
        if request.method == "POST":
            post_id = json.loads(request.content)["post_id"]
            state["count"] += 1
            comment_id = f"c{state['next']}"
            state["next"] += 1
            return httpx.Response(
                201,
                json={"comment": {"id": comment_id, "post_id": post_id, "content": "hi"}, "comments_count": state["count"]},
            )
        state["count"] = max(0, state["count"] - 1)
        return httpx.Response(200, json={"post_id": "p1", "comments_count": state["count"]})

    return handler


def make_aggregator(handler):
    api = FeedApiClient("http://test/api/v1", token="token", transport=httpx.MockTransport(handler))
    views = ViewRegistry()
    bus = EventBus()
    return CommentCountAggregator(api, views, bus), views, bus


@pytest.mark.asyncio
async def test_repost_and_original_share_one_count():
    requests = []
    aggregator, views, bus = make_aggregator(comment_server(requests, count=2))
    original = views.mount(PostView("p1"))
    repost = views.mount(PostView("r1", original_post_id="p1"))

    assert await aggregator.load("r1", original_post_id="p1") == 2
    assert requests == [("GET", "/api/v1/comments/count")]
    assert original.comments == repost.comments == 2

    result = await aggregator.submit("r1", "  hi  ", original_post_id="p1")

    assert result.error is None
    assert result.count == 3
    assert original.comments == repost.comments == 3


@pytest.mark.asyncio
async def test_own_comment_echo_is_ignored():
    aggregator, views, bus = make_aggregator(comment_server([], count=0))
    view = views.mount(PostView("p1"))
    await aggregator.submit("p1", "hi")

    assert aggregator.apply_new({"post_id": "p1", "id": "c1"}) is False
    assert view.comments == 1


@pytest.mark.asyncio
async def test_blank_comment_never_sent():
    requests = []
    aggregator, views, bus = make_aggregator(comment_server(requests))

    result = await aggregator.submit("p1", "   ")

    assert isinstance(result.error, RequestValidationError)
    assert requests == []


@pytest.mark.asyncio
async def test_remove_applies_server_count():
    aggregator, views, bus = make_aggregator(comment_server([], count=0))
    view = views.mount(PostView("p1"))
    created = await aggregator.submit("p1", "hi")

    removed = await aggregator.remove(created.comment["id"], "p1")

    assert removed.count == 0
    assert view.comments == 0
    # Late push for the same delete is dropped
    assert aggregator.apply_deleted({"post_id": "p1", "id": created.comment["id"]}) is False


def test_duplicate_push_events_are_dropped_and_floor_at_zero():
    aggregator, views, bus = make_aggregator(comment_server([]))
    view = views.mount(PostView("p1"))

    assert aggregator.apply_new({"post_id": "p1", "id": "a"}) is True
    assert aggregator.apply_new({"post_id": "p1", "id": "a"}) is False
    assert view.comments == 1

    assert aggregator.apply_deleted({"post_id": "p1", "id": "a"}) is True
    assert aggregator.apply_deleted({"post_id": "p1", "id": "a"}) is False
    assert aggregator.apply_deleted({"post_id": "p1", "id": "b"}) is True
    assert view.comments == 0
    # A re-delivered add for a comment already deleted stays deleted
    assert aggregator.apply_new({"post_id": "p1", "id": "a"}) is False


def test_watch_is_reference_counted():
    aggregator, views, bus = make_aggregator(comment_server([]))
    view = views.mount(PostView("r1", original_post_id="p1"))

    first = aggregator.watch("p1")
    second = aggregator.watch("r1", original_post_id="p1")
    assert bus.subscriber_count(post_topic("p1")) == 1

    bus.publish(post_topic("p1"), Event("new-comment", {"post_id": "p1", "id": "x"}))
    bus.publish(post_topic("p1"), Event("post-counters", {"post_id": "p1", "likes": 4, "reposts": 1, "comments": 5}))
    assert (view.likes, view.reposts, view.comments) == (4, 1, 5)

    first.close()
    first.close()
    assert bus.subscriber_count(post_topic("p1")) == 1
    second.close()
    assert bus.subscriber_count(post_topic("p1")) == 0
    assert aggregator.watching() == []


async def _lines(*lines):
    for line in lines:
        yield line


@pytest.mark.asyncio
async def test_iter_sse_parses_frames_and_skips_pings():
    events = [
        e
        async for e in iter_sse(
            _lines(
                "event: hello",
                'data: {"topic":"post:p1"}',
                "",
                ": ping",
                "",
                "event: new-comment",
                'data: {"post_id":"p1",',
                'data: "id":"c1"}',
                "",
                "event: broken",
                "data: {not json",
                "",
            )
        )
    ]

    assert [e.type for e in events] == ["hello", "new-comment"]
    assert events[1].payload == {"post_id": "p1", "id": "c1"}


@pytest.mark.asyncio
async def test_push_channel_feeds_the_aggregator():
    stream = (
        'event: hello\ndata: {"topic":"post:p1"}\n\n'
        ": ping\n\n"
        'event: new-comment\ndata: {"post_id":"p1","id":"c9"}\n\n'
        'event: new-comment\ndata: {"post_id":"p1","id":"c9"}\n\n'
    )

    def handler(request):
        assert request.url.path == "/api/v1/events/posts/p1"
        return httpx.Response(200, text=stream, headers={"content-type": "text/event-stream"})

    aggregator, views, bus = make_aggregator(handler)
    view = views.mount(PostView("p1"))
    channel = PushChannel(aggregator.api, bus)

    with aggregator.watch("p1"):
        relayed = await channel.listen_post("p1")

    assert relayed == 2
    assert view.comments == 1


@pytest.mark.asyncio
async def test_last_watch_releases_target_state():
    aggregator, views, bus = make_aggregator(comment_server([], count=4))
    views.mount(PostView("p1"))

    with aggregator.watch("p1"):
        await aggregator.load("p1")
        aggregator.apply_new({"post_id": "p1", "id": "a"})
        aggregator.apply_deleted({"post_id": "p1", "id": "b"})
        with aggregator.watch("p1"):
            pass
        # Still watched by the outer handle
        assert aggregator.tracked() == ["p1"]
        assert aggregator.count("p1") == 4

    assert aggregator.tracked() == []
    assert aggregator.count("p1") == 0
