"""
Security helpers for local authentication.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone

from jose import jwt

from vbagen.core.config import Settings

_PBKDF2_ALGO = "pbkdf2_sha256"
_PBKDF2_ITERATIONS = 600_000
_JWT_ALGORITHM = "HS256"


def hash_password(password: str, iterations: int = _PBKDF2_ITERATIONS) -> str:
    """Hash a password using PBKDF2-HMAC-SHA256."""
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return _format_hash(iterations, salt, digest)


def verify_password(password: str, stored_hash: str) -> bool:
    """Verify a password against the stored hash."""
    try:
        algo, iterations, salt, digest = _parse_hash(stored_hash)
    except ValueError:
        return False
    if algo != _PBKDF2_ALGO:
        return False
    computed = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(computed, digest)


def create_access_token(
    user_id: str,
    session_id: str,
    settings: Settings,
    expires_at: datetime | None = None,
) -> str:
    """Create a signed JWT bound to a server-side auth session."""
    now = datetime.now(timezone.utc)
    expires = expires_at or now + timedelta(minutes=settings.AUTH_JWT_EXPIRE_MINUTES)
    payload = {
        "sub": user_id,
        "sid": session_id,
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
    }
    if settings.AUTH_JWT_ISSUER:
        payload["iss"] = settings.AUTH_JWT_ISSUER
    return jwt.encode(payload, settings.AUTH_JWT_SECRET, algorithm=_JWT_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> dict[str, object]:
    """
    Decode and validate an access token.

    Raises:
        jose.JWTError: If the signature, expiry or issuer is invalid
    """
    options = {"verify_iss": bool(settings.AUTH_JWT_ISSUER)}
    return jwt.decode(
        token,
        settings.AUTH_JWT_SECRET,
        algorithms=[_JWT_ALGORITHM],
        issuer=settings.AUTH_JWT_ISSUER or None,
        options=options,
    )


def _format_hash(iterations: int, salt: bytes, digest: bytes) -> str:
    salt_b64 = base64.b64encode(salt).decode("ascii")
    digest_b64 = base64.b64encode(digest).decode("ascii")
    return f"{_PBKDF2_ALGO}${iterations}${salt_b64}${digest_b64}"


def _parse_hash(stored_hash: str) -> tuple[str, int, bytes, bytes]:
    parts = stored_hash.split("$")
    if len(parts) != 4:
        raise ValueError("Invalid hash format")
    algo, iterations_str, salt_b64, digest_b64 = parts
    iterations = int(iterations_str)
    salt = base64.b64decode(salt_b64.encode("ascii"))
    digest = base64.b64decode(digest_b64.encode("ascii"))
    return algo, iterations, salt, digest
