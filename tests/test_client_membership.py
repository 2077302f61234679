"""Membership cache persistence and session rebuild."""
import httpx
import pytest

from solfeed.client.api import FeedApiClient
from solfeed.client.membership import JsonFileSessionStore, MembershipCache, MemorySessionStore, ToggleKind
from solfeed.client.session import ClientSession
from solfeed.realtime.bus import post_topic


def test_cache_writes_through_to_store():
    store = MemorySessionStore()
    cache = MembershipCache("u1", store)

    cache.add(ToggleKind.LIKE, "p1")
    cache.set(ToggleKind.REPOST, "p2", True)
    cache.remove(ToggleKind.LIKE, "missing")

    assert store.load("likes:u1") == ["p1"]
    assert store.load("reposts:u1") == ["p2"]
    # Another user's keys are separate
    assert MembershipCache("u2", store).members(ToggleKind.LIKE) == frozenset()


def test_json_store_survives_restart(tmp_path):
    path = tmp_path / "session" / "state.json"
    cache = MembershipCache("u1", JsonFileSessionStore(path))
    cache.add(ToggleKind.LIKE, "p1")
    cache.add(ToggleKind.LIKE, "p2")
    cache.remove(ToggleKind.LIKE, "p1")

    restored = MembershipCache("u1", JsonFileSessionStore(path))

    assert restored.members(ToggleKind.LIKE) == frozenset({"p2"})
    assert restored.members(ToggleKind.REPOST) == frozenset()


def test_unreadable_session_file_starts_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    cache = MembershipCache("u1", JsonFileSessionStore(path))

    assert cache.members(ToggleKind.LIKE) == frozenset()
    cache.add(ToggleKind.LIKE, "p1")
    assert JsonFileSessionStore(path).load("likes:u1") == ["p1"]


def test_replace_overwrites_members():
    cache = MembershipCache("u1")
    cache.add(ToggleKind.REPOST, "old")

    cache.replace(ToggleKind.REPOST, ["a", "b"])

    assert cache.members(ToggleKind.REPOST) == frozenset({"a", "b"})


def batch_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/likes/batch"):
        return httpx.Response(200, json={"liked_posts": ["p1"]})
    return httpx.Response(200, json={"retweeted_posts": ["p3"]})


@pytest.mark.asyncio
async def test_rebuild_replaces_cache_and_views_read_it():
    store = MemorySessionStore()
    store.save("likes:u1", ["stale"])
    api = FeedApiClient("http://test/api/v1", token="token", transport=httpx.MockTransport(batch_handler))
    session = ClientSession(api, "u1", store=store)

    assert await session.rebuild() is None
    assert session.cache.members(ToggleKind.LIKE) == frozenset({"p1"})

    handle = session.open_view({"id": "r1", "original_post_id": "p1", "likes_count": 3, "comments_count": 2})
    with handle as view:
        assert view.liked is True
        assert view.reposted is False
        assert (view.likes, view.comments) == (3, 2)
        assert session.bus.subscriber_count(post_topic("p1")) == 1

    assert len(session.views) == 0
    assert session.bus.subscriber_count(post_topic("p1")) == 0
    await session.aclose()


@pytest.mark.asyncio
async def test_failed_rebuild_keeps_cached_state():
    store = MemorySessionStore()
    store.save("likes:u1", ["p9"])
    api = FeedApiClient(
        "http://test/api/v1",
        token="token",
        transport=httpx.MockTransport(lambda request: httpx.Response(503, json={"detail": "down"})),
    )
    session = ClientSession(api, "u1", store=store)

    error = await session.rebuild()

    assert error is not None and error.retryable
    assert session.cache.has(ToggleKind.LIKE, "p9")
    await session.aclose()
