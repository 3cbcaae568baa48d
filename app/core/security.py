"""
core/security.py
----------------
Password hashing and session token utilities.

Design decisions:
  - bcrypt work factor from settings (12 in production, lowered in tests)
  - Authentication state lives in the signed session cookie; the session
    only ever carries the user id and an opaque session id, never roles or
    grants, so every request re-reads them from the database.
"""

import secrets

from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


# ── Password Utilities ────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the plain-text password."""
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """Constant-time comparison of plain password against stored hash."""
    return pwd_context.verify(plain, hashed)


# ── Session Utilities ─────────────────────────────────────────────────────────

def new_session_id() -> str:
    """Random identifier minted at login; keys per-session locks."""
    return secrets.token_urlsafe(24)
