from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

import httpx

from smartmarks.client.http import auth_headers, error_message, transport_message


logger = logging.getLogger(__name__)

SessionListener = Callable[["str | None"], None]


class IdentityClient:
    """
    Holds the bearer session token of one signed-in user.

    The token is rotated through the server before it expires; every rotation
    and every sign-out is announced to the registered session listeners with
    the new token (or None once the session is gone).
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        token: str | None = None,
        expires_in: float | None = None,
        refresh_margin: float = 60.0,
    ) -> None:
        self._http = http
        self._token = token or None
        self._expires_in = expires_in
        self._refresh_margin = refresh_margin
        self._listeners: list[SessionListener] = []
        self._refresh_handle: asyncio.TimerHandle | None = None
        self._refresh_task: asyncio.Task | None = None
        self._auto_refresh = False
        self.user: dict | None = None

    @property
    def user_id(self) -> str | None:
        if not self.user:
            return None
        return self.user.get("id")

    async def get_session(self) -> str | None:
        return self._token

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def ensure_session(self) -> bool:
        """Exchange the current token for a fresh session with a known expiry."""
        if not self._token:
            return False
        try:
            response = await self._http.get(
                "/auth/session", headers=auth_headers(self._token)
            )
        except httpx.HTTPError as exc:
            logger.warning("Could not load session: %s", transport_message(exc))
            return False
        if response.status_code != 200:
            logger.warning("Session rejected: %s", error_message(response))
            self._set_session(None, None)
            return False
        self._apply_session_payload(response.json())
        return True

    async def refresh_session(self) -> str | None:
        """Rotate the session token; the previous token stops working."""
        if not self._token:
            return None
        try:
            response = await self._http.post(
                "/auth/session/refresh", headers=auth_headers(self._token)
            )
        except httpx.HTTPError as exc:
            logger.warning("Session refresh failed: %s", transport_message(exc))
            self._schedule_refresh(delay=self._refresh_margin)
            return self._token
        if response.status_code == 401:
            logger.info("Session expired: %s", error_message(response))
            self._set_session(None, None)
            return None
        if response.status_code != 200:
            logger.warning("Session refresh rejected: %s", error_message(response))
            self._schedule_refresh(delay=self._refresh_margin)
            return self._token
        self._apply_session_payload(response.json())
        return self._token

    def start_auto_refresh(self) -> None:
        self._auto_refresh = True
        self._schedule_refresh()

    async def sign_out(self) -> None:
        if self._token:
            try:
                response = await self._http.post(
                    "/auth/signout", headers=auth_headers(self._token)
                )
                if response.status_code >= 400:
                    logger.warning("Sign-out rejected: %s", error_message(response))
            except httpx.HTTPError as exc:
                logger.warning("Sign-out request failed: %s", transport_message(exc))
        self._cancel_refresh()
        self.user = None
        self._set_session(None, None)

    async def close(self) -> None:
        self._auto_refresh = False
        self._cancel_refresh()
        task = self._refresh_task
        self._refresh_task = None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _apply_session_payload(self, payload: dict) -> None:
        if payload.get("user"):
            self.user = payload["user"]
        self._set_session(payload.get("access_token"), payload.get("expires_in"))
        self._schedule_refresh()

    def _set_session(self, token: str | None, expires_in: float | None) -> None:
        changed = token != self._token
        self._token = token or None
        self._expires_in = expires_in
        if not changed:
            return
        for listener in list(self._listeners):
            try:
                listener(self._token)
            except Exception:
                logger.exception("Session listener failed")

    def _schedule_refresh(self, delay: float | None = None) -> None:
        self._cancel_refresh()
        if not self._auto_refresh or not self._token:
            return
        if delay is None:
            if self._expires_in is None:
                return
            delay = max(1.0, float(self._expires_in) - self._refresh_margin)
        loop = asyncio.get_running_loop()
        self._refresh_handle = loop.call_later(delay, self._spawn_refresh)

    def _spawn_refresh(self) -> None:
        self._refresh_handle = None
        self._refresh_task = asyncio.get_running_loop().create_task(
            self.refresh_session()
        )

    def _cancel_refresh(self) -> None:
        if self._refresh_handle is not None:
            self._refresh_handle.cancel()
            self._refresh_handle = None
