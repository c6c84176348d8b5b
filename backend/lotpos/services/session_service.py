# Overview: Bearer token issuance and validation for API callers.

"""
Session tokens.

Authentication itself happens outside this service: an operator issues a
token for an existing user (flask users issue-token) and the client sends it
as "Authorization: Bearer <token>".

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- Absolute expiry (SESSION_TTL_HOURS)
- Revocable
"""

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from lotpos.time_utils import utcnow


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy); never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: tokens are already high-entropy.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def issue_token(user_id: int) -> tuple[SessionToken, str]:
    """
    Create a token for an active user.

    Returns (session_record, plaintext_token).
    Raises ValueError if the user is missing or inactive.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("User is not active")

    plaintext_token = generate_token()
    ttl_hours = current_app.config.get("SESSION_TTL_HOURS", 12)

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        expires_at=utcnow() + timedelta(hours=ttl_hours),
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_token(token: str) -> User | None:
    """
    Return the active user owning a valid token, or None.

    Invalid when unknown, revoked, expired, or the user is deactivated.
    """
    if not token:
        return None
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if not session or session.is_revoked:
        return None

    expires_at = session.expires_at
    if expires_at.tzinfo is not None:
        expires_at = expires_at.replace(tzinfo=None)
    if expires_at <= utcnow():
        return None

    user = session.user
    if not user or not user.is_active:
        return None
    return user


def revoke_token(token: str) -> bool:
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if not session or session.is_revoked:
        return False
    session.is_revoked = True
    session.revoked_at = utcnow()
    db.session.commit()
    return True
