"""
In-process auth/profile backend.

Password accounts in SQLite, HS256 JWT access tokens bound to revocable
server-side sessions, and the per-user profile record holding the API key.
Used directly by the HTTP API and by single-process deployments.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID

from jose import JWTError

from vbagen.core.config import Settings
from vbagen.core.exceptions import AuthError
from vbagen.core.logger import logger
from vbagen.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from vbagen.interfaces.auth_backend import IAuthBackend
from vbagen.interfaces.auth_session_repository import IAuthSessionRepository
from vbagen.interfaces.profile_repository import IProfileRepository
from vbagen.interfaces.user_repository import IUserRepository
from vbagen.models.enums import AuthErrorReason
from vbagen.models.user import AuthSession, UserAccount, UserCreate, normalize_secret_key
from vbagen.utils.datetime_utils import UTC, now_utc

_MIN_PASSWORD_LENGTH = 8


def normalize_email(value: str) -> str:
    return value.strip().lower()


@dataclass
class _ThrottleEntry:
    count: int
    window_end: float


class SignUpThrottle:
    """Fixed-window counter of sign-up attempts per email address."""

    def __init__(self, limit: int, window_seconds: int, clock: Callable[[], float] = time.monotonic):
        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._entries: dict[str, _ThrottleEntry] = {}

    def hit(self, identifier: str) -> None:
        """
        Record an attempt.

        Raises:
            AuthError: RATE_LIMITED once the window's budget is spent
        """
        now = self._clock()
        entry = self._entries.get(identifier)
        if entry and entry.window_end > now:
            if entry.count >= self._limit:
                retry_after = max(int(entry.window_end - now), 1)
                raise AuthError(
                    AuthErrorReason.RATE_LIMITED,
                    "Too many sign-up attempts",
                    retry_after=retry_after,
                )
            entry.count += 1
            return
        self._entries[identifier] = _ThrottleEntry(count=1, window_end=now + self._window_seconds)

    def reset(self) -> None:
        self._entries.clear()


class LocalAuthBackend(IAuthBackend):
    """Auth backend backed by local repositories."""

    def __init__(
        self,
        settings: Settings,
        user_repo: IUserRepository,
        profile_repo: IProfileRepository,
        auth_session_repo: IAuthSessionRepository,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not settings.AUTH_JWT_SECRET:
            raise ValueError("AUTH_JWT_SECRET must be set for local auth")
        self._settings = settings
        self._user_repo = user_repo
        self._profile_repo = profile_repo
        self._auth_session_repo = auth_session_repo
        self._throttle = SignUpThrottle(
            settings.SIGNUP_RATE_LIMIT_ATTEMPTS,
            settings.SIGNUP_RATE_LIMIT_WINDOW_SECONDS,
            clock=clock,
        )

    async def _open_session(self, user: UserAccount) -> AuthSession:
        expires_at = now_utc() + timedelta(minutes=self._settings.AUTH_JWT_EXPIRE_MINUTES)
        session_id = await self._auth_session_repo.create(user.id, expires_at)
        token = create_access_token(str(user.id), session_id, self._settings, expires_at=expires_at)
        return AuthSession(
            access_token=token,
            user_id=str(user.id),
            email=user.email,
            expires_at=expires_at,
        )

    def _decode(self, access_token: str) -> Optional[dict[str, object]]:
        try:
            return decode_access_token(access_token, self._settings)
        except JWTError:
            return None

    async def sign_in(self, email: str, password: str) -> AuthSession:
        user = await self._user_repo.get_by_email(normalize_email(email))
        if not user or not verify_password(password, user.password_hash):
            raise AuthError(AuthErrorReason.INVALID_CREDENTIALS, "Invalid login credentials")
        logger.info(f"User {user.id} signed in")
        return await self._open_session(user)

    async def sign_up(self, email: str, password: str) -> AuthSession:
        email = normalize_email(email)
        if "@" not in email or len(password) < _MIN_PASSWORD_LENGTH:
            raise AuthError(
                AuthErrorReason.INVALID_CREDENTIALS,
                f"A valid email and a password of at least {_MIN_PASSWORD_LENGTH} characters are required",
            )
        self._throttle.hit(email)

        if await self._user_repo.get_by_email(email):
            raise AuthError(AuthErrorReason.ACCOUNT_EXISTS, "Email already registered")

        password_hash = hash_password(password, self._settings.PASSWORD_HASH_ITERATIONS)
        user = await self._user_repo.create(UserCreate(email=email, password_hash=password_hash))
        logger.info(f"User {user.id} registered")
        return await self._open_session(user)

    async def sign_out(self, access_token: str) -> None:
        claims = self._decode(access_token)
        if not claims or not claims.get("sid"):
            return
        await self._auth_session_repo.revoke(str(claims["sid"]))

    async def get_session(self, access_token: str) -> Optional[AuthSession]:
        claims = self._decode(access_token)
        if not claims:
            return None
        subject, session_id = claims.get("sub"), claims.get("sid")
        if not subject or not session_id:
            return None
        if not await self._auth_session_repo.is_active(str(session_id)):
            return None
        try:
            user = await self._user_repo.get(UUID(str(subject)))
        except ValueError:
            return None
        if not user:
            return None
        return AuthSession(
            access_token=access_token,
            user_id=str(user.id),
            email=user.email,
            expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=UTC),
        )

    async def require_session(self, access_token: str) -> AuthSession:
        """Like get_session, but raise NOT_AUTHENTICATED instead of returning None."""
        session = await self.get_session(access_token)
        if not session:
            raise AuthError(AuthErrorReason.NOT_AUTHENTICATED, "Session expired or revoked")
        return session

    async def get_secret_key(self, session: AuthSession) -> Optional[str]:
        profile = await self._profile_repo.get(UUID(session.user_id))
        return profile.secret_key if profile else None

    async def upsert_secret_key(self, session: AuthSession, secret_key: Optional[str]) -> Optional[str]:
        current = await self.require_session(session.access_token)
        profile = await self._profile_repo.upsert_secret_key(
            UUID(current.user_id), normalize_secret_key(secret_key)
        )
        return profile.secret_key
