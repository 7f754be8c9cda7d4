"""
Shared test fixtures.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from datetime import timedelta
from typing import Optional
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from vbagen.core.config import Settings
from vbagen.core.exceptions import AuthError
from vbagen.infrastructure.local.database import Base
from vbagen.infrastructure.local.session_storage import SharedSessionStorage
from vbagen.interfaces.auth_backend import IAuthBackend
from vbagen.models.enums import AuthErrorReason
from vbagen.models.user import AuthSession, normalize_secret_key
from vbagen.services.session_store import SessionStore
from vbagen.utils.datetime_utils import now_utc


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        AUTH_JWT_SECRET="test-secret",
        PASSWORD_HASH_ITERATIONS=1000,
        SIGNUP_RATE_LIMIT_ATTEMPTS=3,
        SIGNUP_RATE_LIMIT_WINDOW_SECONDS=600,
        SIGNUP_COOLDOWN_SECONDS=60,
        LLM_PROVIDER="template",
        API_BASE_URL="http://testserver",
    )


@pytest.fixture
async def session_factory(settings):
    """Session factory bound to a fresh SQLite file database."""
    engine = create_async_engine(settings.DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def test_user_id() -> str:
    return str(uuid4())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class FakeAuthBackend(IAuthBackend):
    """In-memory auth backend with failure injection and call counters."""

    def __init__(self):
        self.accounts: dict[str, tuple[str, str]] = {}
        self.tokens: dict[str, str] = {}
        self.secret_keys: dict[str, Optional[str]] = {}
        self.calls: Counter = Counter()
        self.failures: dict[str, Exception] = {}
        self.pauses: dict[str, asyncio.Event] = {}

    def add_account(self, email: str, password: str, secret_key: Optional[str] = None) -> str:
        user_id = str(uuid4())
        self.accounts[email] = (user_id, password)
        self.secret_keys[user_id] = secret_key
        return user_id

    async def _enter(self, operation: str) -> None:
        self.calls[operation] += 1
        pause = self.pauses.get(operation)
        if pause is not None:
            await pause.wait()
        error = self.failures.pop(operation, None)
        if error is not None:
            raise error

    def _open(self, email: str) -> AuthSession:
        user_id, _ = self.accounts[email]
        token = f"token-{uuid4().hex}"
        self.tokens[token] = email
        return AuthSession(
            access_token=token,
            user_id=user_id,
            email=email,
            expires_at=now_utc() + timedelta(hours=1),
        )

    async def sign_in(self, email: str, password: str) -> AuthSession:
        await self._enter("sign_in")
        account = self.accounts.get(email)
        if account is None or account[1] != password:
            raise AuthError(AuthErrorReason.INVALID_CREDENTIALS)
        return self._open(email)

    async def sign_up(self, email: str, password: str) -> AuthSession:
        await self._enter("sign_up")
        if email in self.accounts:
            raise AuthError(AuthErrorReason.ACCOUNT_EXISTS)
        self.add_account(email, password)
        return self._open(email)

    async def sign_out(self, access_token: str) -> None:
        await self._enter("sign_out")
        self.tokens.pop(access_token, None)

    async def get_session(self, access_token: str) -> Optional[AuthSession]:
        await self._enter("get_session")
        email = self.tokens.get(access_token)
        if email is None:
            return None
        user_id, _ = self.accounts[email]
        return AuthSession(
            access_token=access_token,
            user_id=user_id,
            email=email,
            expires_at=now_utc() + timedelta(hours=1),
        )

    async def get_secret_key(self, session: AuthSession) -> Optional[str]:
        await self._enter("get_secret_key")
        return self.secret_keys.get(session.user_id)

    async def upsert_secret_key(self, session: AuthSession, secret_key: Optional[str]) -> Optional[str]:
        await self._enter("upsert_secret_key")
        if session.access_token not in self.tokens:
            raise AuthError(AuthErrorReason.NOT_AUTHENTICATED)
        self.secret_keys[session.user_id] = normalize_secret_key(secret_key)
        return self.secret_keys[session.user_id]


@pytest.fixture
def fake_backend() -> FakeAuthBackend:
    return FakeAuthBackend()


@pytest.fixture
def storage() -> SharedSessionStorage:
    return SharedSessionStorage()


@pytest.fixture
def make_session_store(fake_backend, storage, settings, clock):
    """Build SessionStores for several windows sharing one storage and backend."""

    def factory(window_id: str = "window-a") -> SessionStore:
        return SessionStore(
            fake_backend, storage, settings=settings, window_id=window_id, clock=clock
        )

    return factory
