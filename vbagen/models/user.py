"""
User account, profile and client identity models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


def normalize_secret_key(value: Optional[str]) -> Optional[str]:
    """Collapse empty or whitespace-only keys to None ("key absent")."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class UserCreate(BaseModel):
    """Create a user account."""

    email: str = Field(..., min_length=3, max_length=255)
    password_hash: str = Field(..., max_length=255)


class UserAccount(BaseModel):
    """User account stored in the database."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    password_hash: str
    created_at: datetime
    updated_at: datetime


class Profile(BaseModel):
    """Per-user profile record holding the generation API key."""

    user_id: UUID
    secret_key: Optional[str] = None
    updated_at: datetime


class AuthSession(BaseModel):
    """Session handed out by the auth backend after sign-in or sign-up."""

    access_token: str
    user_id: str
    email: str
    expires_at: datetime


class Identity(BaseModel):
    """
    Client-visible identity of the signed-in user.

    ``secret_key`` is the user's generation API key; None means "no key".
    """

    id: str
    email: str
    secret_key: Optional[str] = None

    @property
    def has_secret_key(self) -> bool:
        return normalize_secret_key(self.secret_key) is not None


class SessionSnapshot(BaseModel):
    """Identity snapshot persisted in shared session storage."""

    access_token: str
    identity: Identity
