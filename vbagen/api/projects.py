"""
Projects API endpoints.

Owner-scoped projects, their append-only transcripts and artifacts.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from vbagen.api.deps import CurrentSession, ProjectRepo
from vbagen.core.exceptions import ConflictError, NotFoundError
from vbagen.models.project import ArtifactUpdate, Message, MessageCreate, Project, ProjectCreate

router = APIRouter()


def _not_found(project_id: UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Project {project_id} not found",
    )


@router.get("", response_model=list[Project])
async def list_projects(
    session: CurrentSession,
    repo: ProjectRepo,
    limit: int = Query(100, ge=1, le=500),
):
    """List the caller's projects, most recently updated first."""
    return await repo.list(session.user_id, limit=limit)


@router.post("", response_model=Project, status_code=status.HTTP_201_CREATED)
async def create_project(payload: ProjectCreate, session: CurrentSession, repo: ProjectRepo):
    return await repo.create(session.user_id, payload)


@router.get("/{project_id}", response_model=Project)
async def get_project(project_id: UUID, session: CurrentSession, repo: ProjectRepo):
    project = await repo.get(session.user_id, project_id)
    if not project:
        raise _not_found(project_id)
    return project


@router.post("/{project_id}/messages", response_model=Message, status_code=status.HTTP_201_CREATED)
async def append_message(
    project_id: UUID,
    payload: MessageCreate,
    session: CurrentSession,
    repo: ProjectRepo,
):
    """Append a message at the end of the project's transcript."""
    try:
        return await repo.append_message(
            session.user_id,
            project_id,
            Message(content=payload.content, role=payload.role),
        )
    except NotFoundError:
        raise _not_found(project_id)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)


@router.put("/{project_id}/artifact", response_model=Project)
async def set_artifact(
    project_id: UUID,
    payload: ArtifactUpdate,
    session: CurrentSession,
    repo: ProjectRepo,
):
    try:
        return await repo.set_artifact(session.user_id, project_id, payload.artifact)
    except NotFoundError:
        raise _not_found(project_id)
