"""
Conversation store.

In-memory projects of the signed-in user and the currently active one.
Everything is dropped as soon as the identity changes to a different user
(or to nobody), so nothing of the previous user survives a sign-out.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional
from uuid import UUID, uuid4

from pydantic import ValidationError as PydanticValidationError

from vbagen.core.exceptions import ValidationError
from vbagen.core.logger import logger
from vbagen.models.enums import MessageRole, ValidationErrorReason
from vbagen.models.project import Message, Project
from vbagen.models.user import Identity
from vbagen.services.session_store import SessionStore
from vbagen.utils.datetime_utils import now_utc


class ConversationStore:
    """Projects and active-project selection for one client window."""

    def __init__(self, session_store: SessionStore):
        self._session_store = session_store
        self._projects: list[Project] = []
        self._active_id: Optional[UUID] = None
        identity = session_store.identity
        self._owner_id: Optional[str] = identity.id if identity else None
        self._unsubscribe: Optional[Callable[[], None]] = session_store.subscribe(
            self._on_identity_change
        )

    async def _on_identity_change(self, identity: Optional[Identity]) -> None:
        owner_id = identity.id if identity else None
        if owner_id != self._owner_id:
            self.teardown()
            self._owner_id = owner_id

    def close(self) -> None:
        """Stop following identity changes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ===========================================
    # Accessors
    # ===========================================

    @property
    def projects(self) -> list[Project]:
        return list(self._projects)

    @property
    def active_project_id(self) -> Optional[UUID]:
        return self._active_id

    @property
    def active_project(self) -> Optional[Project]:
        if self._active_id is None:
            return None
        return self.get_project(self._active_id)

    def get_project(self, project_id: UUID) -> Optional[Project]:
        return next((p for p in self._projects if p.id == project_id), None)

    def _replace(self, project: Project) -> None:
        self._projects = [project if p.id == project.id else p for p in self._projects]

    # ===========================================
    # Operations
    # ===========================================

    def new_project(self, title: str, description: str = "") -> Optional[Project]:
        """
        Build an empty project for the current identity without storing it.

        Returns None when nobody is signed in.

        Raises:
            ValidationError: MISSING_FIELD for a blank title, WRONG_TYPE for
                any other invalid field
        """
        identity = self._session_store.identity
        if identity is None:
            return None
        if not isinstance(title, str) or not title.strip():
            raise ValidationError(
                ValidationErrorReason.MISSING_FIELD, "title", "Project title is required"
            )

        now = now_utc()
        try:
            return Project(
                id=uuid4(),
                owner_id=identity.id,
                title=title,
                description=description,
                messages=[],
                artifact=None,
                created_at=now,
                updated_at=now,
            )
        except PydanticValidationError as exc:
            errors = exc.errors()
            field = str(errors[0]["loc"][0]) if errors and errors[0]["loc"] else "project"
            raise ValidationError(
                ValidationErrorReason.WRONG_TYPE, field, f"Invalid project {field}"
            ) from exc

    def add_project(self, project: Project) -> Optional[Project]:
        """
        Store a project of the current identity and make it active.

        Projects of anyone else are ignored (None).
        """
        if self._owner_id is None or project.owner_id != self._owner_id:
            logger.debug(f"add_project ignored: project {project.id} not owned by current identity")
            return None
        self._projects.append(project)
        self._active_id = project.id
        return project

    def create_project(self, title: str, description: str = "") -> Optional[Project]:
        """
        Create an empty project owned by the current identity and make it active.

        Returns None (and changes nothing) when nobody is signed in.

        Raises:
            ValidationError: If the title is blank or a field is invalid
        """
        project = self.new_project(title, description)
        if project is None:
            logger.debug("create_project ignored: no identity")
            return None
        return self.add_project(project)

    def append_message(self, content: str, role: MessageRole) -> Optional[Message]:
        """Append a message to the active project; None if no project is active."""
        project = self.active_project
        if project is None:
            return None

        return self.record_message(Message(content=content, role=role))

    def record_message(self, message: Message) -> Optional[Message]:
        """Append an already built message to the active project; None if none is active."""
        project = self.active_project
        if project is None:
            return None

        self._replace(
            project.model_copy(
                update={"messages": [*project.messages, message], "updated_at": now_utc()}
            )
        )
        return message

    def set_artifact(self, artifact: Optional[str]) -> Optional[Project]:
        """Replace the active project's artifact; None if no project is active."""
        project = self.active_project
        if project is None:
            return None

        updated = project.model_copy(update={"artifact": artifact, "updated_at": now_utc()})
        self._replace(updated)
        return updated

    def select_project(self, project_id: UUID) -> Optional[Project]:
        """Make a known project active. Unknown IDs leave the selection unchanged."""
        project = self.get_project(project_id)
        if project is None:
            logger.debug(f"select_project ignored: unknown project {project_id}")
            return None
        self._active_id = project.id
        return project

    def load_projects(self, projects: Iterable[Project]) -> list[Project]:
        """
        Replace the project list with persisted projects of the current identity.

        Projects owned by anyone else are skipped. The active selection is kept
        if that project is still present.
        """
        owner_id = self._owner_id
        self._projects = [p for p in projects if owner_id is not None and p.owner_id == owner_id]
        if self._active_id is not None and self.get_project(self._active_id) is None:
            self._active_id = None
        return self.projects

    def teardown(self) -> None:
        """Forget every project and the active selection."""
        self._projects = []
        self._active_id = None
