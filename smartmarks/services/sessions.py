from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app

from smartmarks.extensions import db
from smartmarks.models import SessionToken, User, utcnow


@dataclass
class IssuedSession:
    access_token: str
    expires_at: datetime
    user: User

    def as_dict(self):
        return {
            "access_token": self.access_token,
            "token_type": "bearer",
            "expires_at": self.expires_at.isoformat(),
            "expires_in": max(0, int((self.expires_at - utcnow()).total_seconds())),
            "user": self.user.as_dict(),
        }


def _ttl() -> timedelta:
    return timedelta(seconds=int(current_app.config["SESSION_TOKEN_TTL_SECONDS"]))


def issue_session(user: User) -> IssuedSession:
    token, token_hash = SessionToken.issue_token()
    expires_at = utcnow() + _ttl()
    row = SessionToken(user_id=user.id, token_hash=token_hash, expires_at=expires_at)
    db.session.add(row)
    db.session.commit()
    return IssuedSession(access_token=token, expires_at=expires_at, user=user)


def _active_row(token: str) -> SessionToken | None:
    if not token:
        return None
    row = SessionToken.query.filter_by(
        token_hash=SessionToken.hash_token(token)
    ).first()
    if not row or not row.is_active(utcnow()):
        return None
    return row


def resolve_session(token: str) -> User | None:
    row = _active_row(token)
    if not row:
        return None
    row.last_used_at = utcnow()
    db.session.commit()
    return row.user


def rotate_session(token: str, user_id: str | None = None) -> IssuedSession | None:
    """Swap a still-valid token for a fresh one; the old token stops working."""
    row = _active_row(token)
    if not row:
        return None
    if user_id is not None and row.user_id != user_id:
        return None
    row.revoked_at = utcnow()
    db.session.flush()
    current_app.logger.debug("Rotated session token for user %s", row.user_id)
    return issue_session(row.user)


def revoke_user_sessions(user_id: str) -> int:
    now = utcnow()
    rows = SessionToken.query.filter_by(user_id=user_id, revoked_at=None).all()
    for row in rows:
        row.revoked_at = now
    db.session.commit()
    return len(rows)


def purge_expired_sessions(now: datetime | None = None) -> int:
    now = now or utcnow()
    removed = SessionToken.query.filter(
        (SessionToken.expires_at < now) | (SessionToken.revoked_at.is_not(None))
    ).delete(synchronize_session=False)
    db.session.commit()
    return removed
