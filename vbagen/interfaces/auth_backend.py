"""
Auth/profile backend interface.

The session store's only collaborator for authentication: session-based
sign-in/sign-up/sign-out, token validation, and the per-user profile record
holding the generation API key.
Implementations: in-process (repositories + JWT), HTTP (httpx client)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from vbagen.models.user import AuthSession


class IAuthBackend(ABC):
    """Abstract interface for the auth/profile backend."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthSession:
        """
        Sign in with email and password.

        Raises:
            AuthError: INVALID_CREDENTIALS or NETWORK
        """
        pass

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> AuthSession:
        """
        Register a new account and open a session for it.

        Raises:
            AuthError: ACCOUNT_EXISTS, RATE_LIMITED, INVALID_CREDENTIALS or NETWORK
        """
        pass

    @abstractmethod
    async def sign_out(self, access_token: str) -> None:
        """Revoke the session behind access_token."""
        pass

    @abstractmethod
    async def get_session(self, access_token: str) -> Optional[AuthSession]:
        """
        Validate a persisted access token.

        Returns:
            The session if it is still valid, None if it expired, was revoked
            or is malformed

        Raises:
            AuthError: NETWORK if the backend could not be reached
        """
        pass

    @abstractmethod
    async def get_secret_key(self, session: AuthSession) -> Optional[str]:
        """Read the API key from the user's profile (None if absent)."""
        pass

    @abstractmethod
    async def upsert_secret_key(self, session: AuthSession, secret_key: Optional[str]) -> Optional[str]:
        """
        Insert or update the API key on the user's profile.

        Returns:
            The stored key (None when removed)

        Raises:
            AuthError: NOT_AUTHENTICATED if the session is no longer valid
            ProfileError: NOT_FOUND or WRITE_CONFLICT
        """
        pass
