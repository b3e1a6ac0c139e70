from __future__ import annotations

from flask import current_app, g, jsonify, request
from flask_login import logout_user

from smartmarks.api import api_bp
from smartmarks.errors import ValidationError
from smartmarks.services.changes import changes_since, head_cursor, wait_for_changes
from smartmarks.services.security import api_auth_required, bearer_token_from_request
from smartmarks.services.sessions import (
    issue_session,
    revoke_user_sessions,
    rotate_session,
)
from smartmarks.services.store import delete_bookmark, insert_bookmark, list_bookmarks


MAX_CHANGE_BATCH = 500


def _validation_error(exc: ValidationError):
    return jsonify({"error": exc.message, "reason": exc.reason}), 400


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok", "service": "Smartmarks"})


@api_bp.route("/auth/session", methods=["GET"])
@api_auth_required()
def session_get():
    user = g.api_user
    presented = bearer_token_from_request()
    # a presented token is exchanged, never left alive next to its replacement
    issued = rotate_session(presented, user_id=user.id) if presented else None
    if issued is None:
        issued = issue_session(user)
    current_app.logger.debug(
        "Issued session token for user %s (%s auth)", user.id, g.api_auth_via
    )
    return jsonify(issued.as_dict())


@api_bp.route("/auth/session/refresh", methods=["POST"])
def session_refresh():
    token = bearer_token_from_request()
    issued = rotate_session(token or "")
    if not issued:
        return jsonify({"error": "session expired or revoked"}), 401
    return jsonify(issued.as_dict())


@api_bp.route("/auth/signout", methods=["POST"])
@api_auth_required()
def signout():
    revoked = revoke_user_sessions(g.api_user.id)
    logout_user()
    return jsonify({"status": "signed_out", "revoked": revoked})


@api_bp.route("/bookmarks", methods=["GET"])
@api_auth_required()
def bookmarks_list_api():
    items = list_bookmarks(g.api_user.id)
    return jsonify({"items": [item.as_dict() for item in items]})


@api_bp.route("/bookmarks", methods=["POST"])
@api_auth_required()
def bookmarks_create_api():
    user = g.api_user
    payload = request.get_json(silent=True) or {}
    claimed_owner = payload.get("user_id")
    if claimed_owner is not None and str(claimed_owner) != user.id:
        return jsonify({"error": "cannot create bookmarks for another user"}), 403

    try:
        bookmark = insert_bookmark(user.id, payload.get("title"), payload.get("url"))
    except ValidationError as exc:
        return _validation_error(exc)
    return jsonify(bookmark.as_dict()), 201


@api_bp.route("/bookmarks/<bookmark_id>", methods=["DELETE"])
@api_auth_required()
def bookmarks_delete_api(bookmark_id: str):
    deleted = delete_bookmark(g.api_user.id, bookmark_id)
    return jsonify({"deleted": deleted})


@api_bp.route("/changes/head", methods=["GET"])
@api_auth_required(token_only=True)
def changes_head():
    return jsonify({"cursor": head_cursor(g.api_user.id)})


@api_bp.route("/changes", methods=["GET"])
@api_auth_required(token_only=True)
def changes_poll():
    user = g.api_user
    since = request.args.get("since", default=0, type=int)
    limit = request.args.get("limit", default=200, type=int)
    limit = max(1, min(limit, MAX_CHANGE_BATCH))
    max_wait = float(current_app.config["CHANGE_FEED_MAX_WAIT_SECONDS"])
    wait = request.args.get("wait", default=0.0, type=float)
    wait = max(0.0, min(wait, max_wait))

    if wait:
        events = wait_for_changes(
            user.id,
            since,
            timeout=wait,
            poll_interval=float(current_app.config["CHANGE_FEED_POLL_INTERVAL_SECONDS"]),
            limit=limit,
        )
    else:
        events = changes_since(user.id, since, limit=limit)

    latest_cursor = events[-1].id if events else since
    return jsonify(
        {
            "events": [event.as_dict() for event in events],
            "cursor": latest_cursor,
            "has_more": len(events) == limit,
        }
    )
