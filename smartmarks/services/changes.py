from __future__ import annotations

import time
from datetime import datetime

from smartmarks.extensions import db
from smartmarks.models import Bookmark, ChangeEvent


ACTION_INSERT = "INSERT"
ACTION_DELETE = "DELETE"

CHANGE_ACTIONS = {ACTION_INSERT, ACTION_DELETE}


def record_change(user_id: str, action: str, bookmark: Bookmark) -> ChangeEvent:
    event = ChangeEvent(
        user_id=user_id,
        table_name=Bookmark.__tablename__,
        entity_id=bookmark.id,
        action=action,
        payload=bookmark.as_dict(),
    )
    db.session.add(event)
    return event


def head_cursor(user_id: str) -> int:
    latest = (
        db.session.query(db.func.max(ChangeEvent.id))
        .filter(ChangeEvent.user_id == user_id)
        .scalar()
    )
    return latest or 0


def changes_since(user_id: str, cursor: int, limit: int = 200) -> list[ChangeEvent]:
    return (
        ChangeEvent.query.filter_by(user_id=user_id)
        .filter(ChangeEvent.id > cursor)
        .order_by(ChangeEvent.id.asc())
        .limit(limit)
        .all()
    )


def wait_for_changes(
    user_id: str,
    cursor: int,
    timeout: float,
    poll_interval: float,
    limit: int = 200,
) -> list[ChangeEvent]:
    """Block until events newer than `cursor` exist or `timeout` elapses."""
    deadline = time.monotonic() + max(0.0, timeout)
    while True:
        events = changes_since(user_id, cursor, limit=limit)
        if events:
            return events
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return []
        # end the read transaction so the next query sees other writers' commits
        db.session.rollback()
        time.sleep(min(poll_interval, remaining))


def purge_changes(before: datetime) -> int:
    removed = ChangeEvent.query.filter(ChangeEvent.created_at < before).delete(
        synchronize_session=False
    )
    db.session.commit()
    return removed
