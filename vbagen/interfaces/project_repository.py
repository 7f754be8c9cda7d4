"""
Project repository interface.

Defines the contract for project and message persistence operations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from vbagen.models.project import Message, Project, ProjectCreate


class IProjectRepository(ABC):
    """Abstract interface for project persistence."""

    @abstractmethod
    async def create(
        self,
        user_id: str,
        project: ProjectCreate,
        project_id: Optional[UUID] = None,
    ) -> Project:
        """
        Create a new project.

        Args:
            user_id: Owner user ID
            project: Project creation data
            project_id: Keep a client-generated ID instead of minting one

        Returns:
            Created project (no messages, no artifact)
        """
        pass

    @abstractmethod
    async def get(self, user_id: str, project_id: UUID) -> Optional[Project]:
        """
        Get a project with its messages in transcript order.

        Returns:
            Project if found and owned by user_id, None otherwise
        """
        pass

    @abstractmethod
    async def list(self, user_id: str, limit: int = 100) -> list[Project]:
        """List a user's projects, most recently updated first."""
        pass

    @abstractmethod
    async def append_message(self, user_id: str, project_id: UUID, message: Message) -> Message:
        """
        Append a message at the end of the transcript and refresh updated_at.

        Raises:
            NotFoundError: If the project does not exist for user_id
        """
        pass

    @abstractmethod
    async def set_artifact(
        self, user_id: str, project_id: UUID, artifact: Optional[str]
    ) -> Project:
        """
        Replace the project's artifact.

        Raises:
            NotFoundError: If the project does not exist for user_id
        """
        pass
