"""
SQLite implementation of user repository.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from vbagen.core.exceptions import AuthError
from vbagen.infrastructure.local.database import UserORM, get_session_factory
from vbagen.interfaces.user_repository import IUserRepository
from vbagen.models.enums import AuthErrorReason
from vbagen.models.user import UserAccount, UserCreate
from vbagen.utils.datetime_utils import ensure_utc


class SqliteUserRepository(IUserRepository):
    """SQLite implementation of user repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: UserORM) -> UserAccount:
        return UserAccount(
            id=UUID(orm.id),
            email=orm.email,
            password_hash=orm.password_hash,
            created_at=ensure_utc(orm.created_at),
            updated_at=ensure_utc(orm.updated_at),
        )

    async def get(self, user_id: UUID) -> Optional[UserAccount]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserORM).where(UserORM.id == str(user_id))
            )
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def get_by_email(self, email: str) -> Optional[UserAccount]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserORM).where(UserORM.email == email)
            )
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def create(self, data: UserCreate) -> UserAccount:
        async with self._session_factory() as session:
            orm = UserORM(
                id=str(uuid4()),
                email=data.email,
                password_hash=data.password_hash,
            )
            session.add(orm)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise AuthError(
                    AuthErrorReason.ACCOUNT_EXISTS, "Email already registered"
                ) from exc
            await session.refresh(orm)
            return self._orm_to_model(orm)
