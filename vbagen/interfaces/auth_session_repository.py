"""
Auth session repository interface.

Server-side record of issued access tokens so that sign-out revokes them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from uuid import UUID


class IAuthSessionRepository(ABC):
    """Abstract interface for server-side auth sessions."""

    @abstractmethod
    async def create(self, user_id: UUID, expires_at: datetime) -> str:
        """Open a session and return its ID."""
        pass

    @abstractmethod
    async def is_active(self, session_id: str) -> bool:
        """Check that a session exists, is not revoked and has not expired."""
        pass

    @abstractmethod
    async def revoke(self, session_id: str) -> None:
        """Revoke a session. Revoking an unknown or revoked session is a no-op."""
        pass
