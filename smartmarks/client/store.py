from __future__ import annotations

import httpx

from smartmarks.client.http import auth_headers, error_message, transport_message
from smartmarks.client.identity import IdentityClient
from smartmarks.client.models import Bookmark
from smartmarks.errors import StoreError


class BookmarkStoreClient:
    """Async access to the bookmarks table; the server scopes every call to the caller."""

    def __init__(self, http: httpx.AsyncClient, identity: IdentityClient) -> None:
        self._http = http
        self._identity = identity

    async def select_all(self) -> list[Bookmark]:
        payload = await self._request("GET", "/bookmarks")
        return [Bookmark.from_dict(row) for row in payload.get("items") or []]

    async def insert(self, user_id: str, title: str, url: str) -> Bookmark | None:
        payload = await self._request(
            "POST",
            "/bookmarks",
            json={"user_id": user_id, "title": title, "url": url},
        )
        if not payload or not payload.get("id"):
            return None
        return Bookmark.from_dict(payload)

    async def delete(self, bookmark_id: str) -> list[Bookmark]:
        payload = await self._request("DELETE", f"/bookmarks/{bookmark_id}")
        return [Bookmark.from_dict(row) for row in payload.get("deleted") or []]

    async def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        token = await self._identity.get_session()
        if not token:
            raise StoreError("not signed in", status_code=401)
        try:
            response = await self._http.request(
                method, path, json=json, headers=auth_headers(token)
            )
        except httpx.HTTPError as exc:
            raise StoreError(transport_message(exc)) from exc
        if response.status_code >= 400:
            raise StoreError(error_message(response), status_code=response.status_code)
        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise StoreError("store returned malformed JSON") from exc
        return payload if isinstance(payload, dict) else {}
