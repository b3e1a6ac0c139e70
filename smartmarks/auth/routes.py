from authlib.integrations.base_client import OAuthError
from flask import current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required, login_user, logout_user

from smartmarks.auth import auth_bp
from smartmarks.extensions import db, oauth
from smartmarks.models import User, utcnow
from smartmarks.services.sessions import revoke_user_sessions


GOOGLE = "google"


def register_oauth_providers(app):
    oauth.register(
        name=GOOGLE,
        client_id=app.config["GOOGLE_CLIENT_ID"],
        client_secret=app.config["GOOGLE_CLIENT_SECRET"],
        server_metadata_url=app.config["GOOGLE_DISCOVERY_URL"],
        client_kwargs={"scope": "openid email profile"},
    )


def upsert_oauth_user(provider: str, userinfo: dict) -> User | None:
    subject = str(userinfo.get("sub") or "").strip()
    if not subject:
        return None

    user = User.query.filter_by(provider=provider, subject=subject).first()
    if not user:
        user = User(provider=provider, subject=subject)
        db.session.add(user)
    user.email = userinfo.get("email") or user.email
    user.display_name = userinfo.get("name") or user.display_name or user.email
    user.avatar_url = userinfo.get("picture") or user.avatar_url
    user.last_login_at = utcnow()
    db.session.commit()
    return user


@auth_bp.route("/login")
def login():
    if current_user.is_authenticated:
        return redirect(url_for("web.index"))
    return render_template("login.html")


@auth_bp.route("/auth/google")
def google_sign_in():
    if not current_app.config.get("GOOGLE_CLIENT_ID"):
        flash("Google sign-in is not configured.", "error")
        return redirect(url_for("auth.login"))
    redirect_uri = url_for("auth.callback", _external=True)
    return oauth.google.authorize_redirect(redirect_uri)


@auth_bp.route("/auth/callback")
def callback():
    error = request.args.get("error")
    if error:
        flash(request.args.get("error_description") or error, "error")
        return redirect(url_for("auth.login"))
    if not request.args.get("code"):
        return redirect(url_for("web.index"))

    try:
        token = oauth.google.authorize_access_token()
        userinfo = token.get("userinfo") or oauth.google.userinfo(token=token)
    except OAuthError as exc:
        current_app.logger.warning("OAuth code exchange failed: %s", exc)
        flash(exc.description or exc.error or "Sign-in failed.", "error")
        return redirect(url_for("auth.login"))

    user = upsert_oauth_user(GOOGLE, dict(userinfo or {}))
    if not user:
        flash("Sign-in failed: the provider returned no account id.", "error")
        return redirect(url_for("auth.login"))

    login_user(user)
    current_app.logger.info("User %s signed in via %s", user.id, GOOGLE)
    return redirect(url_for("web.index"))


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    revoke_user_sessions(current_user.id)
    logout_user()
    return redirect(url_for("auth.login"))
