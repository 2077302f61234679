"""Post, like and repost endpoints."""
import asyncio
import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from solfeed.models.engagement import Like, Repost
from solfeed.models.notification import Notification
from solfeed.models.post import Post
from solfeed.realtime.bus import bus, post_topic


async def _scalar(db, stmt):
    return (await db.execute(stmt)).scalar()


@pytest.mark.asyncio
async def test_create_and_get_post(async_client: AsyncClient, make_user, auth_headers):
    alice = await make_user("alice")

    created = await async_client.post("/api/v1/posts", json={"content": "gm"}, headers=auth_headers(alice))
    assert created.status_code == 201
    body = created.json()
    assert body["content"] == "gm"
    assert body["user"]["username"] == "alice"
    assert body["is_repost"] is False

    fetched = await async_client.get(f"/api/v1/posts/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["likes_count"] == 0

    listed = await async_client.get("/api/v1/posts")
    assert [p["id"] for p in listed.json()] == [body["id"]]


@pytest.mark.asyncio
async def test_mutations_require_auth(async_client: AsyncClient, make_user, make_post):
    alice = await make_user("alice")
    post = await make_post(alice)

    assert (await async_client.post(f"/api/v1/posts/{post.id}/like")).status_code == 401
    assert (await async_client.post("/api/v1/posts", json={"content": "x"})).status_code == 401


@pytest.mark.asyncio
async def test_like_toggle_is_idempotent(async_client: AsyncClient, make_user, make_post, auth_headers):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await make_post(alice)
    url = f"/api/v1/posts/{post.id}/like"

    events = []
    with bus.subscribe(post_topic(post.id), events.append):
        first = await async_client.post(url, headers=auth_headers(bob))
        second = await async_client.post(url, headers=auth_headers(bob))

    assert first.json() == {"post_id": str(post.id), "likes": 1, "liked": True}
    assert second.json() == {"post_id": str(post.id), "likes": 1, "liked": True}
    # Only the request that changed something publishes counters
    assert [e.type for e in events] == ["post-counters"]
    assert events[0].payload["likes"] == 1

    removed = await async_client.delete(url, headers=auth_headers(bob))
    again = await async_client.delete(url, headers=auth_headers(bob))
    assert removed.json() == {"post_id": str(post.id), "likes": 0, "liked": False}
    assert again.json()["likes"] == 0

    unread = await async_client.get("/api/v1/notifications/unread-count", headers=auth_headers(alice))
    assert unread.json() == {"count": 1}


@pytest.mark.asyncio
async def test_like_missing_post(async_client: AsyncClient, make_user, auth_headers):
    bob = await make_user("bob")

    response = await async_client.post(f"/api/v1/posts/{uuid.uuid4()}/like", headers=auth_headers(bob))

    assert response.status_code == 404
    assert response.json()["detail"] == "Post not found"


@pytest.mark.asyncio
async def test_repost_flow(async_client: AsyncClient, make_user, make_post, auth_headers):
    alice = await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")
    post = await make_post(alice, "original")

    reposted = await async_client.post(f"/api/v1/posts/{post.id}/retweet", headers=auth_headers(bob))
    assert reposted.status_code == 200
    body = reposted.json()
    assert body["retweets"] == 1
    assert body["retweeted"] is True
    derived = body["retweet_data"]
    assert derived["original_post_id"] == str(post.id)
    assert derived["is_repost"] is True
    assert derived["reposts_count"] == 1
    assert derived["user"]["username"] == "bob"

    # Liking through the repost counts on the original, and both rows show it
    liked = await async_client.post(f"/api/v1/posts/{derived['id']}/like", headers=auth_headers(carol))
    assert liked.json() == {"post_id": str(post.id), "likes": 1, "liked": True}
    repost_view = (await async_client.get(f"/api/v1/posts/{derived['id']}", headers=auth_headers(carol))).json()
    original_view = (await async_client.get(f"/api/v1/posts/{post.id}", headers=auth_headers(carol))).json()
    assert repost_view["likes_count"] == original_view["likes_count"] == 1
    assert repost_view["is_liked"] is original_view["is_liked"] is True

    batch = await async_client.get("/api/v1/posts/retweets/batch", headers=auth_headers(bob))
    assert batch.json() == {"retweeted_posts": [str(post.id)]}

    undone = await async_client.delete(f"/api/v1/posts/{post.id}/retweet", headers=auth_headers(bob))
    assert undone.json() == {"post_id": str(post.id), "retweets": 0, "retweeted": False, "retweet_data": None}
    assert (await async_client.get(f"/api/v1/posts/{derived['id']}")).status_code == 404
    listed = await async_client.get("/api/v1/posts")
    assert [p["id"] for p in listed.json()] == [str(post.id)]


@pytest.mark.asyncio
async def test_deleting_repost_row_undoes_repost(async_client: AsyncClient, make_user, make_post, auth_headers):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await make_post(alice)
    derived = (
        await async_client.post(f"/api/v1/posts/{post.id}/retweet", headers=auth_headers(bob))
    ).json()["retweet_data"]

    response = await async_client.delete(f"/api/v1/posts/{derived['id']}", headers=auth_headers(bob))

    assert response.status_code == 204
    original = (await async_client.get(f"/api/v1/posts/{post.id}", headers=auth_headers(bob))).json()
    assert original["reposts_count"] == 0
    assert original["is_reposted"] is False


@pytest.mark.asyncio
async def test_delete_post_author_only(async_client: AsyncClient, make_user, make_post, auth_headers):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await make_post(alice)

    assert (await async_client.delete(f"/api/v1/posts/{post.id}", headers=auth_headers(bob))).status_code == 403
    assert (await async_client.delete(f"/api/v1/posts/{post.id}", headers=auth_headers(alice))).status_code == 204
    assert (await async_client.get(f"/api/v1/posts/{post.id}")).status_code == 404


@pytest.mark.asyncio
async def test_liked_posts_batch(async_client: AsyncClient, make_user, make_post, auth_headers):
    alice = await make_user("alice")
    bob = await make_user("bob")
    first = await make_post(alice, "one")
    await make_post(alice, "two")

    await async_client.post(f"/api/v1/posts/{first.id}/like", headers=auth_headers(bob))
    batch = await async_client.get("/api/v1/posts/likes/batch", headers=auth_headers(bob))

    assert batch.json() == {"liked_posts": [str(first.id)]}


@pytest.mark.asyncio
async def test_concurrent_duplicate_like_counts_once(
    async_client: AsyncClient, session_maker, make_user, make_post, auth_headers
):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await make_post(alice)
    url = f"/api/v1/posts/{post.id}/like"

    first, second = await asyncio.gather(
        async_client.post(url, headers=auth_headers(bob)),
        async_client.post(url, headers=auth_headers(bob)),
    )

    assert first.status_code == second.status_code == 200
    assert first.json()["likes"] == second.json()["likes"] == 1
    async with session_maker() as db:
        assert await _scalar(db, select(func.count(Like.id)).where(Like.post_id == post.id)) == 1
        assert await _scalar(db, select(func.count(Notification.id)).where(Notification.user_id == alice.id)) == 1
        assert await _scalar(db, select(Post.likes_count).where(Post.id == post.id)) == 1


@pytest.mark.asyncio
async def test_concurrent_duplicate_repost_creates_one_row(
    async_client: AsyncClient, session_maker, make_user, make_post, auth_headers
):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await make_post(alice)
    url = f"/api/v1/posts/{post.id}/retweet"

    first, second = await asyncio.gather(
        async_client.post(url, headers=auth_headers(bob)),
        async_client.post(url, headers=auth_headers(bob)),
    )

    assert first.status_code == second.status_code == 200
    assert first.json()["retweets"] == second.json()["retweets"] == 1
    # Exactly one of the two requests created the derived row
    assert [r.json()["retweet_data"] is not None for r in (first, second)].count(True) == 1
    async with session_maker() as db:
        assert await _scalar(db, select(func.count(Repost.id)).where(Repost.post_id == post.id)) == 1
        assert await _scalar(db, select(func.count(Post.id)).where(Post.original_post_id == post.id)) == 1
        assert await _scalar(db, select(func.count(Notification.id)).where(Notification.user_id == alice.id)) == 1
        assert await _scalar(db, select(Post.reposts_count).where(Post.id == post.id)) == 1


@pytest.mark.asyncio
async def test_post_interactions_lists_likers_and_reposters(
    async_client: AsyncClient, make_user, make_post, auth_headers
):
    alice = await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")
    post = await make_post(alice)
    await async_client.post(f"/api/v1/posts/{post.id}/like", headers=auth_headers(bob))
    await async_client.post(f"/api/v1/posts/{post.id}/like", headers=auth_headers(carol))
    derived = (
        await async_client.post(f"/api/v1/posts/{post.id}/retweet", headers=auth_headers(carol))
    ).json()["retweet_data"]

    # Asking through the repost row answers for the original
    response = await async_client.get(f"/api/v1/posts/{derived['id']}/interactions")

    assert response.status_code == 200
    body = response.json()
    assert body["post_id"] == str(post.id)
    assert {u["username"] for u in body["likes"]} == {"bob", "carol"}
    assert [u["username"] for u in body["reposts"]] == ["carol"]

    await async_client.delete(f"/api/v1/posts/{post.id}/retweet", headers=auth_headers(carol))
    after = (await async_client.get(f"/api/v1/posts/{post.id}/interactions")).json()
    assert after["reposts"] == []

    missing = await async_client.get(f"/api/v1/posts/{uuid.uuid4()}/interactions")
    assert missing.status_code == 404
