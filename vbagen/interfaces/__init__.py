"""Abstract interfaces for infrastructure abstraction."""

from vbagen.interfaces.auth_backend import IAuthBackend
from vbagen.interfaces.auth_session_repository import IAuthSessionRepository
from vbagen.interfaces.llm_provider import ILLMProvider
from vbagen.interfaces.profile_repository import IProfileRepository
from vbagen.interfaces.project_repository import IProjectRepository
from vbagen.interfaces.session_storage import ISessionStorage
from vbagen.interfaces.user_repository import IUserRepository

__all__ = [
    "IAuthBackend",
    "IAuthSessionRepository",
    "ILLMProvider",
    "IProfileRepository",
    "IProjectRepository",
    "ISessionStorage",
    "IUserRepository",
]
