from functools import wraps

from flask import g, jsonify, request
from flask_login import current_user

from smartmarks.services.sessions import resolve_session


AUTH_VIA_COOKIE = "cookie"
AUTH_VIA_BEARER = "bearer"


def bearer_token_from_request() -> str | None:
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return credentials.strip() or None


def resolve_api_user(token_only=False):
    """Return (user, how) for the current request, or (None, None)."""
    if not token_only and current_user.is_authenticated:
        return current_user._get_current_object(), AUTH_VIA_COOKIE
    token = bearer_token_from_request()
    user = resolve_session(token) if token else None
    if user is None:
        return None, None
    return user, AUTH_VIA_BEARER


def api_auth_required(token_only=False):
    def decorator(func):
        @wraps(func)
        def wrapped(*args, **kwargs):
            user, via = resolve_api_user(token_only=token_only)
            if user is None:
                return jsonify({"error": "authentication required"}), 401
            g.api_user = user
            g.api_auth_via = via
            return func(*args, **kwargs)

        return wrapped

    return decorator
