"""
SQLite implementation of project repository.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError

from vbagen.core.exceptions import ConflictError, NotFoundError
from vbagen.core.logger import logger
from vbagen.infrastructure.local.database import MessageORM, ProjectORM, get_session_factory
from vbagen.interfaces.project_repository import IProjectRepository
from vbagen.models.enums import MessageRole
from vbagen.models.project import Message, Project, ProjectCreate
from vbagen.utils.datetime_utils import ensure_utc, now_utc


_APPEND_ATTEMPTS = 3


class SqliteProjectRepository(IProjectRepository):
    """SQLite implementation of project repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _message_orm_to_model(self, orm: MessageORM) -> Message:
        return Message(
            id=UUID(orm.id),
            content=orm.content,
            role=MessageRole(orm.role),
            timestamp=ensure_utc(orm.created_at),
        )

    def _orm_to_model(self, orm: ProjectORM, messages: list[MessageORM]) -> Project:
        return Project(
            id=UUID(orm.id),
            owner_id=orm.user_id,
            title=orm.title,
            description=orm.description or "",
            artifact=orm.artifact,
            messages=[self._message_orm_to_model(m) for m in messages],
            created_at=ensure_utc(orm.created_at),
            updated_at=ensure_utc(orm.updated_at),
        )

    async def _get_owned(self, session, user_id: str, project_id: UUID) -> Optional[ProjectORM]:
        result = await session.execute(
            select(ProjectORM).where(
                and_(ProjectORM.id == str(project_id), ProjectORM.user_id == user_id)
            )
        )
        return result.scalar_one_or_none()

    async def _load_messages(self, session, project_ids: list[str]) -> dict[str, list[MessageORM]]:
        grouped: dict[str, list[MessageORM]] = {pid: [] for pid in project_ids}
        if not project_ids:
            return grouped
        result = await session.execute(
            select(MessageORM)
            .where(MessageORM.project_id.in_(project_ids))
            .order_by(MessageORM.project_id, MessageORM.position)
        )
        for orm in result.scalars().all():
            grouped[orm.project_id].append(orm)
        return grouped

    async def create(
        self,
        user_id: str,
        project: ProjectCreate,
        project_id: Optional[UUID] = None,
    ) -> Project:
        async with self._session_factory() as session:
            now = now_utc()
            orm = ProjectORM(
                id=str(project_id or uuid4()),
                user_id=user_id,
                title=project.title,
                description=project.description,
                created_at=now,
                updated_at=now,
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm, [])

    async def get(self, user_id: str, project_id: UUID) -> Optional[Project]:
        async with self._session_factory() as session:
            orm = await self._get_owned(session, user_id, project_id)
            if not orm:
                return None
            messages = await self._load_messages(session, [orm.id])
            return self._orm_to_model(orm, messages[orm.id])

    async def list(self, user_id: str, limit: int = 100) -> list[Project]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ProjectORM)
                .where(ProjectORM.user_id == user_id)
                .order_by(ProjectORM.updated_at.desc())
                .limit(limit)
            )
            projects = result.scalars().all()
            messages = await self._load_messages(session, [p.id for p in projects])
            return [self._orm_to_model(p, messages[p.id]) for p in projects]

    async def _next_position(self, session, project_id: UUID) -> int:
        result = await session.execute(
            select(func.max(MessageORM.position)).where(MessageORM.project_id == str(project_id))
        )
        last_position = result.scalar_one_or_none()
        return 0 if last_position is None else last_position + 1

    async def append_message(self, user_id: str, project_id: UUID, message: Message) -> Message:
        for attempt in range(1, _APPEND_ATTEMPTS + 1):
            async with self._session_factory() as session:
                project = await self._get_owned(session, user_id, project_id)
                if not project:
                    raise NotFoundError(f"Project {project_id} not found")

                session.add(
                    MessageORM(
                        id=str(message.id),
                        project_id=str(project_id),
                        position=await self._next_position(session, project_id),
                        role=message.role.value,
                        content=message.content,
                        created_at=message.timestamp,
                    )
                )
                project.updated_at = now_utc()
                try:
                    await session.commit()
                    return message
                except IntegrityError:
                    await session.rollback()
                    logger.info(
                        f"Message position taken in project {project_id}, retrying ({attempt}/{_APPEND_ATTEMPTS})"
                    )
        raise ConflictError(f"Could not append message to project {project_id}")

    async def set_artifact(
        self, user_id: str, project_id: UUID, artifact: Optional[str]
    ) -> Project:
        async with self._session_factory() as session:
            orm = await self._get_owned(session, user_id, project_id)
            if not orm:
                raise NotFoundError(f"Project {project_id} not found")
            orm.artifact = artifact
            orm.updated_at = now_utc()
            await session.commit()
            await session.refresh(orm)
            messages = await self._load_messages(session, [orm.id])
            return self._orm_to_model(orm, messages[orm.id])
