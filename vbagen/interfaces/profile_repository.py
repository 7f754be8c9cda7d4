"""
Profile repository interface.

Defines the contract for the per-user profile record that stores the
generation API key.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from vbagen.models.user import Profile


class IProfileRepository(ABC):
    """Abstract interface for profile persistence."""

    @abstractmethod
    async def get(self, user_id: UUID) -> Optional[Profile]:
        """
        Get the profile of a user.

        Args:
            user_id: Owner user ID

        Returns:
            Profile if one has been written, None otherwise
        """
        pass

    @abstractmethod
    async def upsert_secret_key(self, user_id: UUID, secret_key: Optional[str]) -> Profile:
        """
        Insert or update the user's API key.

        Idempotent; concurrent writes for the same user resolve last-write-wins.

        Args:
            user_id: Owner user ID
            secret_key: New key, or None to remove it

        Returns:
            Stored profile

        Raises:
            ProfileError: NOT_FOUND if the user does not exist,
                WRITE_CONFLICT if the database rejected the write
        """
        pass
