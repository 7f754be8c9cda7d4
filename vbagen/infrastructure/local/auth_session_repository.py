"""
SQLite implementation of auth session repository.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import select

from vbagen.infrastructure.local.database import AuthSessionORM, get_session_factory
from vbagen.interfaces.auth_session_repository import IAuthSessionRepository
from vbagen.utils.datetime_utils import ensure_utc, now_utc


class SqliteAuthSessionRepository(IAuthSessionRepository):
    """SQLite implementation of auth session repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    async def create(self, user_id: UUID, expires_at: datetime) -> str:
        async with self._session_factory() as session:
            orm = AuthSessionORM(
                id=str(uuid4()),
                user_id=str(user_id),
                expires_at=expires_at,
            )
            session.add(orm)
            await session.commit()
            return orm.id

    async def is_active(self, session_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AuthSessionORM).where(AuthSessionORM.id == session_id)
            )
            orm = result.scalar_one_or_none()
            if not orm or orm.revoked:
                return False
            return ensure_utc(orm.expires_at) > now_utc()

    async def revoke(self, session_id: str) -> None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AuthSessionORM).where(AuthSessionORM.id == session_id)
            )
            orm = result.scalar_one_or_none()
            if not orm or orm.revoked:
                return
            orm.revoked = True
            await session.commit()
