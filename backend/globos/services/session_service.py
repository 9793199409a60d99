# Overview: Service-layer operations for session tokens; encapsulates business logic and database work.

"""
Session Token Management Service

Tokens are cryptographically secure random strings handed to the client
once; the database stores only their SHA-256 hash. Sessions have an
absolute lifetime (SESSION_TTL_HOURS, 7 days by default) and are revoked
on logout, on password change and when the user is deactivated.
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from globos.time_utils import utcnow


DEFAULT_SESSION_TTL = timedelta(days=7)


@dataclass
class SessionContext:
    """Resolved bearer credential."""
    user: User
    session: SessionToken


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy), sent to the client only."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    SHA-256 of the token for storage.

    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _session_ttl() -> timedelta:
    hours = current_app.config.get("SESSION_TTL_HOURS")
    return timedelta(hours=hours) if hours else DEFAULT_SESSION_TTL


def create_session(
    user: User,
    user_agent: str | None = None,
    ip_address: str | None = None,
    commit: bool = True,
) -> tuple[SessionToken, str]:
    """
    Create a session for user.

    Returns (session_record, plaintext_token).
    """
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _session_ttl(),
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    if commit:
        db.session.commit()
    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token to its user.

    Returns None when the token is unknown, revoked or expired, or when the
    user no longer exists or has been deactivated (the session is revoked
    in that case). Updates last_used_at on success.
    """
    if not token:
        return None

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return None

    now = utcnow()
    if session.expires_at.replace(tzinfo=None) < now:
        return None

    user = session.user
    if not user or not user.activo:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = "User account deactivated"
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Returns True if a live session was revoked."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str, except_session_id: int | None = None) -> int:
    """Revoke every live session of a user; returns the count revoked."""
    now = utcnow()
    query = db.session.query(SessionToken).filter_by(user_id=user_id, is_revoked=False)
    if except_session_id is not None:
        query = query.filter(SessionToken.id != except_session_id)

    count = 0
    for session in query.all():
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason
        count += 1
    db.session.commit()
    return count


def purge_expired_sessions() -> int:
    """Delete expired or revoked sessions; returns the number removed."""
    removed = db.session.query(SessionToken).filter(
        (SessionToken.expires_at < utcnow()) | (SessionToken.is_revoked.is_(True))
    ).delete(synchronize_session=False)
    db.session.commit()
    return removed
