"""
Project and message models.

A project is one conversation with the assistant: an ordered, append-only
message transcript plus the most recently generated VBA code (the artifact).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from vbagen.models.enums import MessageRole
from vbagen.utils.datetime_utils import now_utc


class Message(BaseModel):
    """A single conversation turn. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    content: str = Field(..., max_length=100000)
    role: MessageRole
    timestamp: datetime = Field(default_factory=now_utc)


class ProjectBase(BaseModel):
    """Base project fields."""

    title: str = Field(..., min_length=1, max_length=200, description="Project title")
    description: str = Field("", max_length=2000, description="What the macro should do")


class ProjectCreate(ProjectBase):
    """Schema for creating a project."""

    pass


class Project(ProjectBase):
    """Project model."""

    id: UUID
    owner_id: str = Field(..., description="Owner user ID")
    messages: list[Message] = Field(default_factory=list)
    artifact: Optional[str] = Field(None, description="Latest generated VBA code")
    created_at: datetime
    updated_at: datetime


class MessageCreate(BaseModel):
    """Schema for appending a message."""

    content: str = Field(..., min_length=1, max_length=100000)
    role: MessageRole = MessageRole.USER


class ArtifactUpdate(BaseModel):
    """Schema for replacing a project's artifact."""

    artifact: Optional[str] = Field(None, max_length=200000)
