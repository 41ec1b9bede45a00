"""Async HTTP client for the chapter endpoints used by editors.

Wraps one ``httpx.AsyncClient`` with the bearer token and translates
non-2xx responses into ``ApiError`` carrying the server's message.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)

_CONNECTION_LIMITS = httpx.Limits(
    max_connections=10,
    max_keepalive_connections=5,
    keepalive_expiry=60,
)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, code: str | None = None):
        self.status_code = status_code
        self.message = message
        self.code = code
        super().__init__(f"{status_code}: {message}")


class DraftroomClient:
    """Thin async wrapper around ``/api/v1`` chapter routes."""

    def __init__(self, base_url: str, token: str | None = None,
                 transport: httpx.AsyncBaseTransport | None = None,
                 timeout: httpx.Timeout = _DEFAULT_TIMEOUT):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/api/v1",
            headers=headers,
            timeout=timeout,
            limits=_CONNECTION_LIMITS,
            transport=transport,
        )

    async def __aenter__(self) -> "DraftroomClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()

    async def _request(self, method: str, path: str, json: dict | None = None) -> Any:
        response = await self._client.request(method, path, json=json)
        if response.is_success:
            return response.json()
        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("error") if isinstance(body, dict) else None
        code = body.get("code") if isinstance(body, dict) else None
        logger.debug("%s %s failed with %d", method, path, response.status_code)
        raise ApiError(response.status_code, message or response.reason_phrase or "Request failed", code)

    async def get_chapter(self, chapter_id: str) -> dict:
        return await self._request("GET", f"/chapters/{chapter_id}")

    async def update_chapter(self, chapter_id: str, *, title: str | None = None,
                             content: str | None = None) -> dict:
        payload = {}
        if title is not None:
            payload["title"] = title
        if content is not None:
            payload["content"] = content
        return await self._request("PUT", f"/chapters/{chapter_id}", json=payload)

    async def autosave_chapter(self, chapter_id: str, content: str, sequence: int | None = None) -> dict:
        payload: dict = {"content": content}
        if sequence is not None:
            payload["sequence"] = sequence
        return await self._request("POST", f"/chapters/{chapter_id}/autosave", json=payload)
