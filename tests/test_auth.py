from authlib.integrations.base_client import OAuthError
from flask import redirect

from smartmarks.extensions import oauth
from smartmarks.models import SessionToken, User


def _fake_token(subject="google-sub-1", email="alice@example.com", name="Alice"):
    return {
        "access_token": "provider-token",
        "userinfo": {
            "sub": subject,
            "email": email,
            "name": name,
            "picture": "https://example.com/alice.png",
        },
    }


def test_login_page_renders(client):
    response = client.get("/login")
    assert response.status_code == 200
    assert b"Continue with Google" in response.data


def test_collection_screen_redirects_anonymous_users_to_login(client):
    response = client.get("/", follow_redirects=False)
    assert response.status_code == 302
    assert "/login" in response.headers["Location"]


def test_google_sign_in_redirects_to_provider(client, monkeypatch):
    captured = {}

    def fake_authorize_redirect(redirect_uri, **kwargs):
        captured["redirect_uri"] = redirect_uri
        return redirect("https://accounts.example/authorize")

    monkeypatch.setattr(oauth.google, "authorize_redirect", fake_authorize_redirect)

    response = client.get("/auth/google", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["Location"] == "https://accounts.example/authorize"
    assert captured["redirect_uri"] == "http://localhost/auth/callback"


def test_google_sign_in_requires_configuration(client, app):
    app.config["GOOGLE_CLIENT_ID"] = ""

    response = client.get("/auth/google", follow_redirects=True)

    assert b"Google sign-in is not configured." in response.data


def test_callback_without_code_goes_home(client):
    response = client.get("/auth/callback", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/")


def test_callback_creates_user_and_signs_in(client, app, monkeypatch):
    monkeypatch.setattr(
        oauth.google, "authorize_access_token", lambda **kwargs: _fake_token()
    )

    response = client.get("/auth/callback?code=abc&state=xyz", follow_redirects=False)

    assert response.status_code == 302
    with app.app_context():
        user = User.query.filter_by(provider="google", subject="google-sub-1").one()
        assert user.email == "alice@example.com"
        assert user.display_name == "Alice"
        assert user.last_login_at is not None

    response = client.get("/")
    assert response.status_code == 200
    assert b"Add a bookmark" in response.data


def test_repeat_sign_in_reuses_account(client, app, monkeypatch):
    monkeypatch.setattr(
        oauth.google,
        "authorize_access_token",
        lambda **kwargs: _fake_token(email="new@example.com"),
    )

    client.get("/auth/callback?code=one")
    client.get("/auth/callback?code=two")

    with app.app_context():
        users = User.query.all()
        assert len(users) == 1
        assert users[0].email == "new@example.com"


def test_callback_provider_error_returns_to_login(client, monkeypatch):
    def failing_exchange(**kwargs):
        raise OAuthError(error="invalid_grant", description="Code expired")

    monkeypatch.setattr(oauth.google, "authorize_access_token", failing_exchange)

    response = client.get("/auth/callback?code=stale", follow_redirects=True)

    assert b"Code expired" in response.data


def test_callback_error_parameter_is_shown(client):
    response = client.get(
        "/auth/callback?error=access_denied&error_description=User+cancelled",
        follow_redirects=True,
    )
    assert b"User cancelled" in response.data


def test_logout_revokes_session_tokens(client, app, make_user, web_login):
    user_id, token = make_user("alice")
    web_login(user_id)

    response = client.post("/logout", follow_redirects=False)

    assert response.status_code == 302
    assert "/login" in response.headers["Location"]
    with app.app_context():
        row = SessionToken.query.filter_by(
            token_hash=SessionToken.hash_token(token)
        ).one()
        assert row.revoked_at is not None
    assert client.get("/", follow_redirects=False).status_code == 302
