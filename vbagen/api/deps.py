"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the local
infrastructure implementations based on configuration.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from vbagen.core.config import get_settings
from vbagen.infrastructure.auth.local_auth import LocalAuthBackend
from vbagen.interfaces.auth_session_repository import IAuthSessionRepository
from vbagen.interfaces.profile_repository import IProfileRepository
from vbagen.interfaces.project_repository import IProjectRepository
from vbagen.interfaces.user_repository import IUserRepository
from vbagen.models.user import AuthSession


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_user_repository() -> IUserRepository:
    """Get user repository instance."""
    from vbagen.infrastructure.local.user_repository import SqliteUserRepository
    return SqliteUserRepository()


@lru_cache()
def get_profile_repository() -> IProfileRepository:
    """Get profile repository instance."""
    from vbagen.infrastructure.local.profile_repository import SqliteProfileRepository
    return SqliteProfileRepository()


@lru_cache()
def get_auth_session_repository() -> IAuthSessionRepository:
    """Get auth session repository instance."""
    from vbagen.infrastructure.local.auth_session_repository import SqliteAuthSessionRepository
    return SqliteAuthSessionRepository()


@lru_cache()
def get_project_repository() -> IProjectRepository:
    """Get project repository instance."""
    from vbagen.infrastructure.local.project_repository import SqliteProjectRepository
    return SqliteProjectRepository()


# ===========================================
# Auth Backend
# ===========================================


@lru_cache()
def get_auth_backend() -> LocalAuthBackend:
    """Get auth backend instance (holds the sign-up throttle)."""
    return LocalAuthBackend(
        get_settings(),
        get_user_repository(),
        get_profile_repository(),
        get_auth_session_repository(),
    )


# ===========================================
# User Authentication
# ===========================================


def get_bearer_token(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Extract the token from an "Authorization: Bearer <token>" header."""
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
        )

    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("Invalid scheme")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )
    return token


async def get_current_session(
    token: Annotated[str, Depends(get_bearer_token)],
    backend: Annotated[LocalAuthBackend, Depends(get_auth_backend)],
) -> AuthSession:
    """Get the caller's active session, 401 if missing, expired or revoked."""
    session = await backend.get_session(token)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or revoked",
        )
    return session


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

UserRepo = Annotated[IUserRepository, Depends(get_user_repository)]
ProfileRepo = Annotated[IProfileRepository, Depends(get_profile_repository)]
ProjectRepo = Annotated[IProjectRepository, Depends(get_project_repository)]
AuthBackend = Annotated[LocalAuthBackend, Depends(get_auth_backend)]
BearerToken = Annotated[str, Depends(get_bearer_token)]
CurrentSession = Annotated[AuthSession, Depends(get_current_session)]
