"""
Fixtures wiring the FastAPI app to a temporary database.
"""

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from main import create_app
from vbagen.api.deps import (
    get_auth_backend,
    get_auth_session_repository,
    get_profile_repository,
    get_project_repository,
    get_user_repository,
)
from vbagen.infrastructure.auth.local_auth import LocalAuthBackend
from vbagen.infrastructure.local.auth_session_repository import SqliteAuthSessionRepository
from vbagen.infrastructure.local.database import init_db
from vbagen.infrastructure.local.profile_repository import SqliteProfileRepository
from vbagen.infrastructure.local.project_repository import SqliteProjectRepository
from vbagen.infrastructure.local.user_repository import SqliteUserRepository


def build_app(settings, session_factory, clock) -> FastAPI:
    """App whose dependencies all use ``session_factory``."""
    user_repo = SqliteUserRepository(session_factory)
    profile_repo = SqliteProfileRepository(session_factory)
    auth_session_repo = SqliteAuthSessionRepository(session_factory)
    project_repo = SqliteProjectRepository(session_factory)
    backend = LocalAuthBackend(settings, user_repo, profile_repo, auth_session_repo, clock=clock)

    app = create_app()
    app.dependency_overrides[get_user_repository] = lambda: user_repo
    app.dependency_overrides[get_profile_repository] = lambda: profile_repo
    app.dependency_overrides[get_auth_session_repository] = lambda: auth_session_repo
    app.dependency_overrides[get_project_repository] = lambda: project_repo
    app.dependency_overrides[get_auth_backend] = lambda: backend
    return app


@pytest.fixture
def client(settings, clock):
    """TestClient over a NullPool engine (connections never outlive a request loop)."""
    engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)
    asyncio.run(init_db(engine))
    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    yield TestClient(build_app(settings, factory, clock))


@pytest.fixture
def asgi_app(settings, session_factory, clock) -> FastAPI:
    """App for in-loop use through httpx.ASGITransport."""
    return build_app(settings, session_factory, clock)
