"""Comment, notification, follow and tip endpoints."""
import uuid

import pytest
from httpx import AsyncClient

from solfeed.realtime.bus import bus, post_topic


@pytest.mark.asyncio
async def test_comment_lifecycle(async_client: AsyncClient, make_user, make_post, auth_headers):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await make_post(alice)

    events = []
    with bus.subscribe(post_topic(post.id), events.append):
        created = await async_client.post(
            "/api/v1/comments",
            json={"post_id": str(post.id), "content": "  hello  "},
            headers=auth_headers(bob),
        )
        assert created.status_code == 201
        body = created.json()
        assert body["comments_count"] == 1
        assert body["comment"]["content"] == "hello"
        assert body["comment"]["author"] == "Bob"

        removed = await async_client.delete(f"/api/v1/comments/{body['comment']['id']}", headers=auth_headers(alice))

    assert removed.json() == {"post_id": str(post.id), "comments_count": 0}
    assert [e.type for e in events] == ["new-comment", "post-counters", "delete-comment", "post-counters"]
    assert events[0].payload["id"] == body["comment"]["id"]
    assert events[2].payload == {"post_id": str(post.id), "id": body["comment"]["id"]}

    gone = await async_client.delete(f"/api/v1/comments/{body['comment']['id']}", headers=auth_headers(alice))
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_blank_comment_rejected(async_client: AsyncClient, make_user, make_post, auth_headers):
    alice = await make_user("alice")
    post = await make_post(alice)

    response = await async_client.post(
        "/api/v1/comments", json={"post_id": str(post.id), "content": "   "}, headers=auth_headers(alice)
    )

    assert response.status_code == 422
    count = await async_client.get("/api/v1/comments/count", params={"post_id": str(post.id)})
    assert count.json() == {"post_id": str(post.id), "count": 0}


@pytest.mark.asyncio
async def test_only_authors_can_delete_comments(async_client: AsyncClient, make_user, make_post, auth_headers):
    alice = await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")
    post = await make_post(alice)
    comment = (
        await async_client.post(
            "/api/v1/comments", json={"post_id": str(post.id), "content": "hi"}, headers=auth_headers(bob)
        )
    ).json()["comment"]

    response = await async_client.delete(f"/api/v1/comments/{comment['id']}", headers=auth_headers(carol))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_comment_listing_and_counts(async_client: AsyncClient, make_user, make_post, auth_headers):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await make_post(alice)
    other = await make_post(alice, "other")
    for text in ("one", "two"):
        await async_client.post(
            "/api/v1/comments", json={"post_id": str(post.id), "content": text}, headers=auth_headers(bob)
        )

    listed = await async_client.get("/api/v1/comments", params={"post_id": str(post.id)})
    assert listed.json()["total"] == 2
    assert {c["content"] for c in listed.json()["comments"]} == {"one", "two"}

    batch = await async_client.post(
        "/api/v1/comments/batch-count", json={"post_ids": [str(post.id), str(other.id), str(uuid.uuid4())]}
    )
    assert batch.json() == {
        "counts": [{"post_id": str(post.id), "count": 2}, {"post_id": str(other.id), "count": 0}]
    }
    missing = await async_client.get("/api/v1/comments/count", params={"post_id": str(uuid.uuid4())})
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_notification_inbox(async_client: AsyncClient, make_user, make_post, auth_headers):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await make_post(alice)
    await async_client.post(f"/api/v1/posts/{post.id}/like", headers=auth_headers(bob))
    await async_client.post(f"/api/v1/users/{alice.id}/follow", headers=auth_headers(bob))

    inbox = (await async_client.get("/api/v1/notifications", headers=auth_headers(alice))).json()
    assert inbox["unread_count"] == 2
    assert {n["type"] for n in inbox["notifications"]} == {"like", "follow"}
    assert all(n["actor"]["username"] == "bob" for n in inbox["notifications"])

    likes = (
        await async_client.get("/api/v1/notifications", params={"type": "like"}, headers=auth_headers(alice))
    ).json()
    assert [n["type"] for n in likes["notifications"]] == ["like"]
    notification_id = likes["notifications"][0]["id"]

    # Someone else's notification
    forbidden = await async_client.put(f"/api/v1/notifications/{notification_id}/read", headers=auth_headers(bob))
    assert forbidden.status_code == 403

    first = await async_client.put(f"/api/v1/notifications/{notification_id}/read", headers=auth_headers(alice))
    second = await async_client.put(f"/api/v1/notifications/{notification_id}/read", headers=auth_headers(alice))
    assert first.json() == {"updated": 1, "unread_count": 1}
    assert second.json() == {"updated": 0, "unread_count": 1}

    missing = await async_client.put(f"/api/v1/notifications/{uuid.uuid4()}/read", headers=auth_headers(alice))
    assert missing.status_code == 404

    all_read = await async_client.put("/api/v1/notifications/mark-all-read", headers=auth_headers(alice))
    again = await async_client.put("/api/v1/notifications/mark-all-read", headers=auth_headers(alice))
    assert all_read.json() == {"updated": 1, "unread_count": 0}
    assert again.json() == {"updated": 0, "unread_count": 0}


@pytest.mark.asyncio
async def test_follow_and_unfollow(async_client: AsyncClient, make_user, auth_headers):
    alice = await make_user("alice")
    bob = await make_user("bob")
    url = f"/api/v1/users/{alice.id}/follow"

    first = await async_client.post(url, headers=auth_headers(bob))
    second = await async_client.post(url, headers=auth_headers(bob))
    assert first.json() == {"user_id": str(alice.id), "following": True, "followers_count": 1}
    assert second.json()["followers_count"] == 1

    unread = await async_client.get("/api/v1/notifications/unread-count", headers=auth_headers(alice))
    assert unread.json() == {"count": 1}

    removed = await async_client.delete(url, headers=auth_headers(bob))
    assert removed.json() == {"user_id": str(alice.id), "following": False, "followers_count": 0}

    self_follow = await async_client.post(f"/api/v1/users/{bob.id}/follow", headers=auth_headers(bob))
    assert self_follow.status_code == 400


@pytest.mark.asyncio
async def test_tip_creates_transaction_notification(async_client: AsyncClient, make_user, auth_headers):
    alice = await make_user("alice")
    bob = await make_user("bob")

    response = await async_client.post(
        "/api/v1/tips",
        json={"recipient_id": str(alice.id), "amount": 10.5, "signature": "5Jx9sig"},
        headers=auth_headers(bob),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["type"] == "transaction"
    assert body["amount"] == 10.5
    assert body["entity_id"] == "5Jx9sig"
    assert body["user_id"] == str(alice.id)

    self_tip = await async_client.post(
        "/api/v1/tips",
        json={"recipient_id": str(bob.id), "amount": 1, "signature": "sig"},
        headers=auth_headers(bob),
    )
    assert self_tip.status_code == 400
    negative = await async_client.post(
        "/api/v1/tips",
        json={"recipient_id": str(alice.id), "amount": 0, "signature": "sig"},
        headers=auth_headers(bob),
    )
    assert negative.status_code == 422


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    assert (await async_client.get("/health")).json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_tip_history(async_client: AsyncClient, make_user, auth_headers):
    alice = await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")
    for sender, amount, signature in ((bob, 1.5, "sig-1"), (carol, 2, "sig-2"), (bob, 3, "sig-3")):
        await async_client.post(
            "/api/v1/tips",
            json={"recipient_id": str(alice.id), "amount": amount, "signature": signature},
            headers=auth_headers(sender),
        )
    # Other notification types are not tips
    await async_client.post(f"/api/v1/users/{alice.id}/follow", headers=auth_headers(bob))

    received = (await async_client.get("/api/v1/tips/received", headers=auth_headers(alice))).json()
    assert received["total"] == 3
    assert {t["signature"] for t in received["tips"]} == {"sig-1", "sig-2", "sig-3"}
    assert all(t["recipient"]["username"] == "alice" for t in received["tips"])

    sent = (await async_client.get("/api/v1/tips/sent", headers=auth_headers(bob))).json()
    assert sent["total"] == 2
    assert sorted((t["amount"], t["sender"]["username"]) for t in sent["tips"]) == [(1.5, "bob"), (3.0, "bob")]

    page = (
        await async_client.get("/api/v1/tips/received", params={"limit": 1}, headers=auth_headers(alice))
    ).json()
    assert page["total"] == 3
    assert len(page["tips"]) == 1

    assert (await async_client.get("/api/v1/tips/sent", headers=auth_headers(alice))).json() == {
        "tips": [],
        "total": 0,
    }
    assert (await async_client.get("/api/v1/tips/received")).status_code == 401
