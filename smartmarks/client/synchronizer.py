"""
Keeps a local, newest-first bookmark collection in step with the server.

Three inputs feed the collection: the user's own mutations (add/remove),
explicit refetches (initial load, focus regain) and change notifications
pushed through the subscription channel. Every refetch replaces the whole
collection, so whichever snapshot lands last is what the user sees; there is
no per-record merge.

All methods run on one asyncio event loop. Store and validation failures
never escape the public operations: they become a transient notice and are
kept in `last_error`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from smartmarks.client.channel import ChangeChannel
from smartmarks.client.identity import IdentityClient
from smartmarks.client.models import (
    NOTICE_ERROR,
    NOTICE_OK,
    Bookmark,
    ChangeEvent,
    Notice,
)
from smartmarks.client.store import BookmarkStoreClient
from smartmarks.errors import ChannelError, SmartmarksError, StoreError, ValidationError
from smartmarks.services.common import validate_bookmark_input


logger = logging.getLogger(__name__)

DEFAULT_NOTICE_TTL = 2.5

StateListener = Callable[["BookmarkSynchronizer"], None]


class BookmarkSynchronizer:
    def __init__(
        self,
        store: BookmarkStoreClient,
        identity: IdentityClient,
        channel: ChangeChannel | None = None,
        owner_id: str | None = None,
        notice_ttl: float = DEFAULT_NOTICE_TTL,
    ) -> None:
        self.store = store
        self.identity = identity
        self.channel = channel
        self.owner_id = owner_id
        self.notice_ttl = notice_ttl

        self.collection: list[Bookmark] = []
        self.loading = True
        self.submitting = False
        self.pending_mutation_id: str | None = None
        self.last_notice: Notice | None = None
        self.last_error: SmartmarksError | None = None

        self._listeners: list[StateListener] = []
        self._notice_handle: asyncio.TimerHandle | None = None
        self._unsubscribe_session: Callable[[], None] | None = None
        self._initialized = False
        self._disposed = False

    async def __aenter__(self) -> BookmarkSynchronizer:
        if not self.owner_id:
            raise ValueError("owner_id is required to open a synchronizer")
        await self.initialize(self.owner_id)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    def add_listener(self, callback: StateListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    async def initialize(self, owner_id: str) -> bool:
        if self._disposed:
            raise RuntimeError("synchronizer has been disposed")
        if self._initialized:
            if owner_id != self.owner_id:
                raise ValueError("synchronizer is already bound to another owner")
            return await self.refresh()

        self.owner_id = owner_id
        self._initialized = True
        self.loading = True
        self._emit()
        try:
            await self._open_channel()
            return await self.refresh()
        except BaseException:
            # release the subscription before letting the failure through
            await self._release()
            self._initialized = False
            raise
        finally:
            self.loading = False
            self._emit()

    async def refresh(self) -> bool:
        try:
            rows = await self.store.select_all()
        except StoreError as exc:
            self._fail(exc)
            return False
        self.collection = list(rows)
        self._emit()
        return True

    async def on_focus(self) -> bool:
        return await self.refresh()

    async def add(self, title: str, raw_url: str) -> Bookmark | None:
        self._clear_notice()
        try:
            clean_title, url = validate_bookmark_input(title, raw_url)
        except ValidationError as exc:
            self._fail(exc)
            return None

        self.submitting = True
        self._emit()
        try:
            record = await self.store.insert(self.owner_id, clean_title, url)
        except StoreError as exc:
            self._fail(exc)
            return None
        finally:
            self.submitting = False

        if record is None:
            await self.refresh()
        else:
            # a notification-driven refresh may already have brought the row in
            rest = [item for item in self.collection if item.id != record.id]
            self.collection = [record, *rest]
        self._set_notice(NOTICE_OK, "Bookmark added!")
        return record

    async def remove(self, bookmark_id: str) -> bool:
        self._clear_notice()
        self.pending_mutation_id = bookmark_id
        self._emit()
        try:
            await self.store.delete(bookmark_id)
        except StoreError as exc:
            self._clear_pending(bookmark_id)
            self._fail(exc)
            return False

        self._clear_pending(bookmark_id)
        self.collection = [item for item in self.collection if item.id != bookmark_id]
        self._set_notice(NOTICE_OK, "Deleted.")
        return True

    async def reconcile_notification(self, event: ChangeEvent) -> bool:
        if self._disposed:
            return False
        if event.user_id and self.owner_id and event.user_id != self.owner_id:
            logger.debug("Ignoring change event %s for another owner", event.cursor)
            return False
        return await self.refresh()

    async def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._cancel_notice_timer()
        await self._release()
        self._listeners.clear()

    async def _open_channel(self) -> None:
        if self.channel is None:
            return
        token = await self.identity.get_session()
        if token:
            self.channel.set_auth(token)
        self._unsubscribe_session = self.identity.on_session_change(
            self._on_session_change
        )
        try:
            await self.channel.subscribe(self.reconcile_notification)
        except ChannelError as exc:
            logger.warning(
                "Live updates unavailable, relying on focus refresh: %s", exc.message
            )

    async def _release(self) -> None:
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None
        if self.channel is not None:
            await self.channel.unsubscribe()

    def _on_session_change(self, token: str | None) -> None:
        if self.channel is not None:
            self.channel.set_auth(token)

    def _clear_pending(self, bookmark_id: str) -> None:
        if self.pending_mutation_id == bookmark_id:
            self.pending_mutation_id = None

    def _fail(self, exc: SmartmarksError) -> None:
        self.last_error = exc
        logger.info("%s: %s", exc.__class__.__name__, exc.message)
        self._set_notice(NOTICE_ERROR, exc.message)

    def _set_notice(self, kind: str, text: str) -> None:
        self._cancel_notice_timer()
        notice = Notice(kind=kind, text=text)
        self.last_notice = notice
        loop = asyncio.get_running_loop()
        self._notice_handle = loop.call_later(self.notice_ttl, self._expire_notice, notice)
        self._emit()

    def _expire_notice(self, notice: Notice) -> None:
        if self.last_notice is notice:
            self.last_notice = None
            self._notice_handle = None
            self._emit()

    def _clear_notice(self) -> None:
        self._cancel_notice_timer()
        if self.last_notice is not None:
            self.last_notice = None
            self._emit()

    def _cancel_notice_timer(self) -> None:
        if self._notice_handle is not None:
            self._notice_handle.cancel()
            self._notice_handle = None

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Bookmark state listener %r failed", listener)
