"""HTTP client for the Gamebox API.

Every request carries the tab's ``X-Tab-Id`` so the server can keep the
originating tab out of the resulting sync broadcast.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

HTTP_NO_CONTENT = 204
HTTP_BAD_REQUEST = 400


class GameboxApiError(RuntimeError):
    """Raised when the API answers with a non-2xx status or is unreachable."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def new_tab_id() -> str:
    """Return a random per-tab identifier."""
    return secrets.token_hex(8)


class GameboxClient:
    """Async wrapper over the ``/api/v1`` surface."""

    @dataclass(frozen=True)
    class RequestParams:
        method: str
        path: str
        json_data: Any = None
        params: dict[str, Any] | None = None

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        tab_id: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.tab_id = tab_id or new_tab_id()
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=f"{self.base_url}/api/v1",
                    timeout=httpx.Timeout(self._timeout),
                    transport=self._transport,
                )
        return self._client

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "X-Tab-Id": self.tab_id}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, params: RequestParams) -> Any:
        client = await self._ensure_client()
        try:
            response = await client.request(
                params.method,
                params.path,
                json=params.json_data,
                params=params.params,
                headers=self._headers(),
            )
        except httpx.HTTPError as exc:
            raise GameboxApiError(f"{params.method} {params.path} failed: {exc}") from exc

        if response.status_code == HTTP_NO_CONTENT:
            return None
        body = response.json() if response.content else None
        if response.status_code >= HTTP_BAD_REQUEST:
            detail = body.get("detail") if isinstance(body, dict) else body
            raise GameboxApiError(
                f"{params.method} {params.path} returned {response.status_code}: {detail}",
                status_code=response.status_code,
                body=body,
            )
        return body

    async def _get(self, path: str, **query: Any) -> Any:
        params = {k: v for k, v in query.items() if v is not None}
        return await self._request(self.RequestParams("GET", path, params=params or None))

    async def _post(self, path: str, json_data: Any = None) -> Any:
        return await self._request(self.RequestParams("POST", path, json_data=json_data))

    async def _delete(self, path: str) -> Any:
        return await self._request(self.RequestParams("DELETE", path))

    # Feed and hydration

    async def feed(
        self,
        *,
        tab: str = "for-you",
        filter: str = "all",
        cursor: dict[str, str] | None = None,
        limit: int = 20,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"tab": tab, "filter": filter, "limit": limit}
        if cursor:
            body["cursor"] = cursor
        return await self._post("/feed", body)

    async def following_ids(self) -> list[str]:
        return (await self._get("/feed/following-ids"))["ids"]

    async def post_likes(self, post_ids: list[str]) -> dict[str, dict[str, Any]]:
        return (await self._post("/posts/likes", {"post_ids": post_ids}))["likes"]

    async def review_likes(self, pairs: list[tuple[str, int]]) -> dict[str, Any]:
        payload = {"pairs": [{"user_id": u, "game_id": g} for u, g in pairs]}
        return await self._post("/reviews/likes", payload)

    # Mutations

    async def toggle_post_like(self, post_id: str) -> dict[str, Any]:
        return await self._post(f"/posts/{post_id}/like")

    async def toggle_review_like(self, review_user_id: str, game_id: int) -> dict[str, Any]:
        return await self._post(f"/reviews/{review_user_id}/{game_id}/like")

    async def follow(self, user_id: str) -> dict[str, Any]:
        return await self._post(f"/users/{user_id}/follow")

    async def unfollow(self, user_id: str) -> dict[str, Any]:
        return await self._delete(f"/users/{user_id}/follow")

    async def block(self, user_id: str) -> dict[str, Any]:
        return await self._post(f"/users/{user_id}/block")

    async def unblock(self, user_id: str) -> dict[str, Any]:
        return await self._delete(f"/users/{user_id}/block")

    async def mute(self, user_id: str) -> dict[str, Any]:
        return await self._post(f"/users/{user_id}/mute")

    async def unmute(self, user_id: str) -> dict[str, Any]:
        return await self._delete(f"/users/{user_id}/mute")

    # Reads

    async def user_profile(self, username: str) -> dict[str, Any]:
        return await self._get(f"/users/{username}")

    async def search(self, q: str, *, limit: int = 8) -> dict[str, Any]:
        return await self._get("/search", q=q, limit=limit)

    async def unread_count(self) -> int:
        return (await self._get("/notifications/unread-count"))["unread"]

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
