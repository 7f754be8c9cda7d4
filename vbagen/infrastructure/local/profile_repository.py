"""
SQLite implementation of profile repository.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, OperationalError

from vbagen.core.exceptions import ProfileError
from vbagen.core.logger import logger
from vbagen.infrastructure.local.database import ProfileORM, UserORM, get_session_factory
from vbagen.interfaces.profile_repository import IProfileRepository
from vbagen.models.enums import ProfileErrorReason
from vbagen.models.user import Profile, normalize_secret_key
from vbagen.utils.datetime_utils import ensure_utc, now_utc


class SqliteProfileRepository(IProfileRepository):
    """SQLite implementation of profile repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: ProfileORM) -> Profile:
        return Profile(
            user_id=UUID(orm.user_id),
            secret_key=normalize_secret_key(orm.secret_key),
            updated_at=ensure_utc(orm.updated_at),
        )

    async def get(self, user_id: UUID) -> Optional[Profile]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ProfileORM).where(ProfileORM.user_id == str(user_id))
            )
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def upsert_secret_key(self, user_id: UUID, secret_key: Optional[str]) -> Profile:
        secret_key = normalize_secret_key(secret_key)
        async with self._session_factory() as session:
            owner = await session.execute(
                select(UserORM.id).where(UserORM.id == str(user_id))
            )
            if owner.scalar_one_or_none() is None:
                raise ProfileError(ProfileErrorReason.NOT_FOUND, f"User {user_id} not found")

            now = now_utc()
            stmt = (
                sqlite_insert(ProfileORM)
                .values(user_id=str(user_id), secret_key=secret_key, updated_at=now)
                .on_conflict_do_update(
                    index_elements=[ProfileORM.user_id],
                    set_={"secret_key": secret_key, "updated_at": now},
                )
            )
            try:
                await session.execute(stmt)
                await session.commit()
            except (IntegrityError, OperationalError) as exc:
                await session.rollback()
                logger.warning(f"Profile write for {user_id} rejected: {exc}")
                raise ProfileError(ProfileErrorReason.WRITE_CONFLICT) from exc

            result = await session.execute(
                select(ProfileORM).where(ProfileORM.user_id == str(user_id))
            )
            return self._orm_to_model(result.scalar_one())
