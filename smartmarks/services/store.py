"""
Owner-scoped access to the bookmarks table.

Every read and delete is filtered by the authenticated owner passed in by the
caller, and every insert is stamped with it. Callers never get to choose whose
rows they see.
"""

from __future__ import annotations

from flask import current_app

from smartmarks.extensions import db
from smartmarks.models import Bookmark
from smartmarks.services.changes import ACTION_DELETE, ACTION_INSERT, record_change
from smartmarks.services.common import validate_bookmark_input


def list_bookmarks(user_id: str) -> list[Bookmark]:
    return (
        Bookmark.query.filter_by(user_id=user_id)
        .order_by(Bookmark.created_at.desc(), Bookmark.seq.desc())
        .all()
    )


def insert_bookmark(user_id: str, title: str | None, raw_url: str | None) -> Bookmark:
    clean_title, url = validate_bookmark_input(title, raw_url)
    bookmark = Bookmark(user_id=user_id, title=clean_title, url=url)
    db.session.add(bookmark)
    db.session.flush()
    record_change(user_id, ACTION_INSERT, bookmark)
    db.session.commit()
    current_app.logger.info("Bookmark %s added for user %s", bookmark.id, user_id)
    return bookmark


def delete_bookmark(user_id: str, bookmark_id: str) -> list[dict]:
    rows = Bookmark.query.filter_by(id=bookmark_id, user_id=user_id).all()
    deleted = [row.as_dict() for row in rows]
    for row in rows:
        record_change(user_id, ACTION_DELETE, row)
        db.session.delete(row)
    db.session.commit()
    if rows:
        current_app.logger.info("Bookmark %s deleted for user %s", bookmark_id, user_id)
    return deleted
