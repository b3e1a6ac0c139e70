from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from smartmarks.client.http import auth_headers, error_message, transport_message
from smartmarks.client.models import ChangeEvent
from smartmarks.errors import ChannelError


logger = logging.getLogger(__name__)

STATUS_SUBSCRIBED = "SUBSCRIBED"
STATUS_CHANNEL_ERROR = "CHANNEL_ERROR"
STATUS_CLOSED = "CLOSED"

ChangeCallback = Callable[[ChangeEvent], Awaitable[object]]


class ChangeChannel:
    """
    Long-poll subscription to the signed-in user's bookmark change feed.

    The feed is authorized by the session token alone, so `set_auth` must be
    called with every rotated token. After a 401 the poll loop parks until a
    new token arrives; transport failures are retried after `retry_delay`.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        topic: str,
        wait: float = 25.0,
        retry_delay: float = 3.0,
    ) -> None:
        self._http = http
        self.topic = topic
        self._wait = wait
        self._retry_delay = retry_delay
        self._token: str | None = None
        self._auth_ready = asyncio.Event()
        self._callback: ChangeCallback | None = None
        self._task: asyncio.Task | None = None
        self.cursor = 0
        self.status = STATUS_CLOSED

    @property
    def subscribed(self) -> bool:
        return self._task is not None and not self._task.done()

    def set_auth(self, token: str | None) -> None:
        self._token = token or None
        if self._token:
            self._auth_ready.set()
        else:
            self._auth_ready.clear()

    async def subscribe(self, callback: ChangeCallback) -> None:
        if self.subscribed:
            raise ChannelError(f"channel {self.topic} is already subscribed")
        if not self._token:
            raise ChannelError("no session token to authorize the subscription")

        try:
            response = await self._http.get(
                "/changes/head", headers=auth_headers(self._token)
            )
        except httpx.HTTPError as exc:
            raise ChannelError(transport_message(exc)) from exc
        if response.status_code != 200:
            raise ChannelError(error_message(response))

        try:
            self.cursor = int(response.json().get("cursor") or 0)
        except (ValueError, TypeError, AttributeError) as exc:
            raise ChannelError(f"unreadable change feed head: {exc}") from exc
        self._callback = callback
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"change-channel:{self.topic}"
        )
        self._set_status(STATUS_SUBSCRIBED)

    async def unsubscribe(self) -> None:
        task = self._task
        self._task = None
        self._callback = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._set_status(STATUS_CLOSED)

    async def _run(self) -> None:
        while True:
            await self._auth_ready.wait()
            token = self._token
            try:
                response = await self._http.get(
                    "/changes",
                    params={"since": self.cursor, "wait": self._wait},
                    headers=auth_headers(token),
                )
            except httpx.HTTPError as exc:
                self._set_status(STATUS_CHANNEL_ERROR, transport_message(exc))
                await asyncio.sleep(self._retry_delay)
                continue

            if response.status_code == 401:
                self._set_status(STATUS_CHANNEL_ERROR, "session token rejected")
                if self._token == token:
                    self._auth_ready.clear()
                continue
            if response.status_code != 200:
                self._set_status(STATUS_CHANNEL_ERROR, error_message(response))
                await asyncio.sleep(self._retry_delay)
                continue

            try:
                payload = response.json()
                events = [
                    ChangeEvent.from_dict(row) for row in payload.get("events") or []
                ]
                cursor = int(payload.get("cursor") or self.cursor)
            except (ValueError, TypeError, AttributeError, KeyError) as exc:
                self._set_status(STATUS_CHANNEL_ERROR, f"unreadable change batch: {exc}")
                await asyncio.sleep(self._retry_delay)
                continue

            self._set_status(STATUS_SUBSCRIBED)
            self.cursor = cursor
            for event in events:
                await self._dispatch(event)

    async def _dispatch(self, event: ChangeEvent) -> None:
        callback = self._callback
        if callback is None:
            return
        try:
            await callback(event)
        except Exception:
            logger.exception("Change handler failed on %s event %s", self.topic, event.cursor)

    def _set_status(self, status: str, detail: str | None = None) -> None:
        if status == self.status and detail is None:
            return
        self.status = status
        if status == STATUS_CHANNEL_ERROR:
            logger.warning("[channel %s] status: %s (%s)", self.topic, status, detail)
        else:
            logger.info("[channel %s] status: %s", self.topic, status)
