from datetime import timedelta

from smartmarks.extensions import db
from smartmarks.models import Bookmark, ChangeEvent, SessionToken, utcnow


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _add(client, token: str, title: str, url: str):
    return client.post(
        "/api/v1/bookmarks", headers=_auth(token), json={"title": title, "url": url}
    )


def test_health(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_bookmarks_require_authentication(client):
    assert client.get("/api/v1/bookmarks").status_code == 401
    response = client.get("/api/v1/bookmarks", headers=_auth("sm_unknown"))
    assert response.status_code == 401
    assert response.get_json()["error"] == "authentication required"


def test_insert_returns_row_with_coerced_url(client, make_user):
    user_id, token = make_user("alice")

    response = _add(client, token, "  Docs ", "example.org/x")

    assert response.status_code == 201
    row = response.get_json()
    assert row["title"] == "Docs"
    assert row["url"] == "https://example.org/x"
    assert row["user_id"] == user_id
    assert row["id"]
    assert row["created_at"]


def test_insert_validation_errors(client, make_user):
    _, token = make_user("alice")

    response = _add(client, token, "", "example.com")
    assert response.status_code == 400
    assert response.get_json() == {
        "error": "Please enter a title.",
        "reason": "missing title",
    }

    response = _add(client, token, "Docs", "")
    assert response.get_json()["reason"] == "missing url"

    response = _add(client, token, "Docs", "http://")
    assert response.get_json()["reason"] == "invalid url"

    response = _add(client, token, "Docs", "javascript://%0aalert(document.cookie)")
    assert response.status_code == 400
    assert response.get_json()["reason"] == "invalid url"

    response = client.get("/api/v1/bookmarks", headers=_auth(token))
    assert response.get_json()["items"] == []


def test_insert_for_another_owner_is_forbidden(client, make_user):
    _, token = make_user("alice")
    bob_id, _ = make_user("bob")

    response = client.post(
        "/api/v1/bookmarks",
        headers=_auth(token),
        json={"user_id": bob_id, "title": "Sneaky", "url": "example.com"},
    )

    assert response.status_code == 403


def test_list_is_newest_first_and_owner_scoped(client, make_user):
    _, alice = make_user("alice")
    _, bob = make_user("bob")
    _add(client, alice, "First", "first.example")
    _add(client, alice, "Second", "second.example")
    _add(client, bob, "Bob's", "bob.example")

    items = client.get("/api/v1/bookmarks", headers=_auth(alice)).get_json()["items"]

    assert [item["title"] for item in items] == ["Second", "First"]

    items = client.get("/api/v1/bookmarks", headers=_auth(bob)).get_json()["items"]
    assert [item["title"] for item in items] == ["Bob's"]


def test_delete_only_touches_own_rows(client, make_user, app):
    _, alice = make_user("alice")
    _, bob = make_user("bob")
    bookmark_id = _add(client, alice, "Mine", "mine.example").get_json()["id"]

    response = client.delete(f"/api/v1/bookmarks/{bookmark_id}", headers=_auth(bob))
    assert response.status_code == 200
    assert response.get_json() == {"deleted": []}
    with app.app_context():
        assert db.session.query(Bookmark).filter_by(id=bookmark_id).count() == 1

    response = client.delete(f"/api/v1/bookmarks/{bookmark_id}", headers=_auth(alice))
    assert response.status_code == 200
    deleted = response.get_json()["deleted"]
    assert [row["id"] for row in deleted] == [bookmark_id]
    with app.app_context():
        assert db.session.query(Bookmark).filter_by(id=bookmark_id).count() == 0


def test_web_session_cookie_can_use_api(client, make_user, web_login):
    user_id, _ = make_user("alice")
    web_login(user_id)

    response = client.post(
        "/api/v1/bookmarks", json={"title": "Cookie", "url": "cookie.example"}
    )
    assert response.status_code == 201

    response = client.get("/api/v1/auth/session")
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["access_token"].startswith("sm_")
    assert payload["user"]["id"] == user_id
    assert payload["expires_in"] > 0


def test_session_refresh_rotates_token(client, make_user):
    _, token = make_user("alice")

    response = client.post("/api/v1/auth/session/refresh", headers=_auth(token))
    assert response.status_code == 200
    new_token = response.get_json()["access_token"]
    assert new_token != token

    assert client.get("/api/v1/bookmarks", headers=_auth(token)).status_code == 401
    assert client.get("/api/v1/bookmarks", headers=_auth(new_token)).status_code == 200

    response = client.post("/api/v1/auth/session/refresh", headers=_auth(token))
    assert response.status_code == 401


def test_expired_token_is_rejected(client, make_user, app):
    _, token = make_user("alice")
    with app.app_context():
        row = SessionToken.query.filter_by(
            token_hash=SessionToken.hash_token(token)
        ).first()
        row.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

    assert client.get("/api/v1/bookmarks", headers=_auth(token)).status_code == 401


def test_signout_revokes_all_sessions(client, make_user):
    _, token = make_user("alice")
    other = client.post("/api/v1/auth/session/refresh", headers=_auth(token))
    second = other.get_json()["access_token"]

    response = client.post("/api/v1/auth/signout", headers=_auth(second))

    assert response.status_code == 200
    assert client.get("/api/v1/bookmarks", headers=_auth(second)).status_code == 401


def test_change_feed_is_owner_scoped_and_cursored(client, make_user):
    _, alice = make_user("alice")
    _, bob = make_user("bob")

    head = client.get("/api/v1/changes/head", headers=_auth(alice)).get_json()
    assert head == {"cursor": 0}

    bookmark_id = _add(client, alice, "A", "a.example").get_json()["id"]
    _add(client, bob, "B", "b.example")
    client.delete(f"/api/v1/bookmarks/{bookmark_id}", headers=_auth(alice))

    payload = client.get(
        "/api/v1/changes?since=0", headers=_auth(alice)
    ).get_json()
    assert [event["action"] for event in payload["events"]] == ["INSERT", "DELETE"]
    assert {event["entity_id"] for event in payload["events"]} == {bookmark_id}
    assert {event["table"] for event in payload["events"]} == {"bookmarks"}

    cursor = payload["cursor"]
    payload = client.get(
        f"/api/v1/changes?since={cursor}", headers=_auth(alice)
    ).get_json()
    assert payload["events"] == []
    assert payload["cursor"] == cursor


def test_change_feed_requires_bearer_token(client, make_user, web_login):
    user_id, _ = make_user("alice")
    web_login(user_id)

    assert client.get("/api/v1/changes/head").status_code == 401


def test_change_feed_long_poll_times_out_empty(client, make_user, app):
    _, token = make_user("alice")

    response = client.get("/api/v1/changes?since=0&wait=60", headers=_auth(token))

    assert response.status_code == 200
    assert response.get_json()["events"] == []
    with app.app_context():
        assert ChangeEvent.query.count() == 0


def _live_tokens(app, user_id: str) -> int:
    with app.app_context():
        return SessionToken.query.filter_by(user_id=user_id, revoked_at=None).count()


def test_session_exchange_retires_presented_bearer_token(client, make_user, app):
    user_id, token = make_user("alice")

    response = client.get("/api/v1/auth/session", headers=_auth(token))
    assert response.status_code == 200
    exchanged = response.get_json()["access_token"]

    assert exchanged != token
    assert client.get("/api/v1/bookmarks", headers=_auth(token)).status_code == 401
    assert client.get("/api/v1/bookmarks", headers=_auth(exchanged)).status_code == 200
    assert client.get("/api/v1/auth/session", headers=_auth(token)).status_code == 401

    for _ in range(4):
        exchanged = client.get(
            "/api/v1/auth/session", headers=_auth(exchanged)
        ).get_json()["access_token"]
    assert _live_tokens(app, user_id) == 1


def test_cookie_session_exchanges_previous_page_token(
    client, make_user, web_login, app
):
    user_id, token = make_user("alice")
    _, bob_token = make_user("bob")
    web_login(user_id)

    first = client.get("/api/v1/auth/session", headers=_auth(token)).get_json()
    assert first["user"]["id"] == user_id
    assert client.get("/api/v1/bookmarks", headers=_auth(token)).status_code == 401
    assert _live_tokens(app, user_id) == 1

    # another user's token is never rotated through this user's cookie
    second = client.get("/api/v1/auth/session", headers=_auth(bob_token)).get_json()
    assert second["user"]["id"] == user_id
    assert client.get("/api/v1/bookmarks", headers=_auth(bob_token)).status_code == 200
