"""Thin async HTTP client for the /api/v1 surface."""
import logging
from collections.abc import AsyncIterator
from typing import Any
from uuid import UUID

import httpx

from solfeed.client.config import client_settings
from solfeed.client.errors import ClientError, TransientError, error_from_response

logger = logging.getLogger(__name__)


class FeedApiClient:
    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or client_settings.API_BASE_URL).rstrip("/")
        self.token = token
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else client_settings.CLIENT_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def __aenter__(self) -> "FeedApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._http.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransientError(str(e) or e.__class__.__name__) from e
        if response.is_error:
            raise error_from_response(response)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ClientError(f"Invalid JSON from {method} {path}", response.status_code) from e

    # Posts and toggles

    async def get_post(self, post_id: UUID | str) -> dict:
        return await self.request("GET", f"/posts/{post_id}")

    async def interactions(self, post_id: UUID | str) -> dict:
        return await self.request("GET", f"/posts/{post_id}/interactions")

    async def like(self, post_id: UUID | str) -> dict:
        return await self.request("POST", f"/posts/{post_id}/like")

    async def unlike(self, post_id: UUID | str) -> dict:
        return await self.request("DELETE", f"/posts/{post_id}/like")

    async def repost(self, post_id: UUID | str) -> dict:
        return await self.request("POST", f"/posts/{post_id}/retweet")

    async def unrepost(self, post_id: UUID | str) -> dict:
        return await self.request("DELETE", f"/posts/{post_id}/retweet")

    async def liked_posts(self) -> list[str]:
        data = await self.request("GET", "/posts/likes/batch")
        return data.get("liked_posts", [])

    async def reposted_posts(self) -> list[str]:
        data = await self.request("GET", "/posts/retweets/batch")
        return data.get("retweeted_posts", [])

    # Comments

    async def create_comment(self, post_id: UUID | str, content: str) -> dict:
        return await self.request("POST", "/comments", json={"post_id": str(post_id), "content": content})

    async def delete_comment(self, comment_id: UUID | str) -> dict:
        return await self.request("DELETE", f"/comments/{comment_id}")

    async def list_comments(self, post_id: UUID | str, skip: int = 0, limit: int = 50) -> dict:
        return await self.request("GET", "/comments", params={"post_id": str(post_id), "skip": skip, "limit": limit})

    async def comment_count(self, post_id: UUID | str) -> dict:
        return await self.request("GET", "/comments/count", params={"post_id": str(post_id)})

    async def comment_counts(self, post_ids: list[UUID | str]) -> dict[str, int]:
        data = await self.request("POST", "/comments/batch-count", json={"post_ids": [str(p) for p in post_ids]})
        return {item["post_id"]: item["count"] for item in data.get("counts", [])}

    # Notifications

    async def notifications(
        self,
        skip: int = 0,
        limit: int = 50,
        notification_type: str | None = None,
        unread_only: bool = False,
    ) -> dict:
        params: dict[str, Any] = {"skip": skip, "limit": limit}
        if notification_type:
            params["type"] = notification_type
        if unread_only:
            params["unread_only"] = "true"
        return await self.request("GET", "/notifications", params=params)

    async def unread_count(self) -> int:
        data = await self.request("GET", "/notifications/unread-count")
        return data.get("count", 0)

    async def mark_read(self, notification_id: UUID | str) -> dict:
        return await self.request("PUT", f"/notifications/{notification_id}/read")

    async def mark_all_read(self) -> dict:
        return await self.request("PUT", "/notifications/mark-all-read")

    # Users and tips

    async def follow(self, user_id: UUID | str) -> dict:
        return await self.request("POST", f"/users/{user_id}/follow")

    async def unfollow(self, user_id: UUID | str) -> dict:
        return await self.request("DELETE", f"/users/{user_id}/follow")

    async def tip(self, recipient_id: UUID | str, amount: float, signature: str) -> dict:
        return await self.request(
            "POST",
            "/tips",
            json={"recipient_id": str(recipient_id), "amount": amount, "signature": signature},
        )

    async def tips(self, *, sent: bool = False, skip: int = 0, limit: int = 20) -> dict:
        path = "/tips/sent" if sent else "/tips/received"
        return await self.request("GET", path, params={"skip": skip, "limit": limit})

    # Push

    async def stream_lines(self, path: str) -> AsyncIterator[str]:
        """Raw lines of a text/event-stream response. Runs until the server closes the stream."""
        try:
            async with self._http.stream(
                "GET", path, headers={**self._headers(), "Accept": "text/event-stream"}, timeout=None
            ) as response:
                if response.is_error:
                    await response.aread()
                    raise error_from_response(response)
                async for line in response.aiter_lines():
                    yield line
        except httpx.TransportError as e:
            raise TransientError(str(e) or e.__class__.__name__) from e
