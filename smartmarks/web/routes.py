from __future__ import annotations

from flask import flash, jsonify, redirect, render_template, request, url_for
from flask_login import current_user, login_required

from smartmarks.errors import ValidationError
from smartmarks.services.common import display_host, favicon_url
from smartmarks.services.store import delete_bookmark, insert_bookmark, list_bookmarks
from smartmarks.web import web_bp


def _serialize_bookmark_card(bookmark) -> dict:
    payload = bookmark.as_dict()
    payload["host"] = display_host(bookmark.url)
    payload["favicon_url"] = favicon_url(bookmark.url)
    payload["delete_url"] = url_for("web.bookmarks_delete", bookmark_id=bookmark.id)
    return payload


@web_bp.route("/")
@login_required
def index():
    items = [_serialize_bookmark_card(item) for item in list_bookmarks(current_user.id)]
    return render_template(
        "bookmarks.html",
        items=items,
        form_title=request.args.get("title", ""),
        form_url=request.args.get("url", ""),
    )


@web_bp.route("/bookmarks/live")
@login_required
def bookmarks_live():
    items = [_serialize_bookmark_card(item) for item in list_bookmarks(current_user.id)]
    return jsonify({"items": items, "total": len(items)})


@web_bp.route("/bookmarks", methods=["POST"])
@login_required
def bookmarks_new():
    title = request.form.get("title") or ""
    url = request.form.get("url") or ""
    try:
        insert_bookmark(current_user.id, title, url)
    except ValidationError as exc:
        flash(exc.message, "error")
        # keep what the user typed so the form can be corrected
        return redirect(url_for("web.index", title=title, url=url))

    flash("Bookmark added!", "success")
    return redirect(url_for("web.index"))


@web_bp.route("/bookmarks/<bookmark_id>/delete", methods=["POST"])
@login_required
def bookmarks_delete(bookmark_id: str):
    if delete_bookmark(current_user.id, bookmark_id):
        flash("Deleted.", "success")
    else:
        flash("Bookmark not found.", "error")
    return redirect(url_for("web.index"))
