"""
Authentication and profile endpoints (register/login/logout, API key).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import BaseModel, Field

from vbagen.api.deps import AuthBackend, BearerToken, CurrentSession
from vbagen.core.exceptions import AuthError, ProfileError
from vbagen.models.enums import AuthErrorReason, ProfileErrorReason
from vbagen.models.user import AuthSession

router = APIRouter()

_AUTH_ERROR_STATUS = {
    AuthErrorReason.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    AuthErrorReason.NOT_AUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorReason.ACCOUNT_EXISTS: status.HTTP_409_CONFLICT,
    AuthErrorReason.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    AuthErrorReason.NETWORK: status.HTTP_503_SERVICE_UNAVAILABLE,
}

_PROFILE_ERROR_STATUS = {
    ProfileErrorReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ProfileErrorReason.WRITE_CONFLICT: status.HTTP_409_CONFLICT,
}


class CredentialsRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class AuthUser(BaseModel):
    id: str
    email: str


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: AuthUser


class SecretKeyRequest(BaseModel):
    secret_key: Optional[str] = Field(None, max_length=512)


class ProfileResponse(BaseModel):
    secret_key: Optional[str] = None
    has_secret_key: bool = False


def _auth_http_error(e: AuthError) -> HTTPException:
    headers = None
    if e.reason == AuthErrorReason.RATE_LIMITED and e.retry_after:
        headers = {"Retry-After": str(e.retry_after)}
    return HTTPException(
        status_code=_AUTH_ERROR_STATUS[e.reason],
        detail=e.message,
        headers=headers,
    )


def _to_response(session: AuthSession) -> AuthResponse:
    return AuthResponse(
        access_token=session.access_token,
        expires_at=session.expires_at,
        user=AuthUser(id=session.user_id, email=session.email),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: CredentialsRequest, backend: AuthBackend):
    try:
        session = await backend.sign_up(payload.email, payload.password)
    except AuthError as e:
        raise _auth_http_error(e)
    return _to_response(session)


@router.post("/login", response_model=AuthResponse)
async def login(payload: CredentialsRequest, backend: AuthBackend):
    try:
        session = await backend.sign_in(payload.email, payload.password)
    except AuthError as e:
        raise _auth_http_error(e)
    return _to_response(session)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(token: BearerToken, backend: AuthBackend):
    await backend.sign_out(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/session", response_model=AuthResponse)
async def get_session(session: CurrentSession):
    return _to_response(session)


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(session: CurrentSession, backend: AuthBackend):
    secret_key = await backend.get_secret_key(session)
    return ProfileResponse(secret_key=secret_key, has_secret_key=secret_key is not None)


@router.put("/profile/secret-key", response_model=ProfileResponse)
async def update_secret_key(
    payload: SecretKeyRequest,
    session: CurrentSession,
    backend: AuthBackend,
):
    try:
        secret_key = await backend.upsert_secret_key(session, payload.secret_key)
    except AuthError as e:
        raise _auth_http_error(e)
    except ProfileError as e:
        raise HTTPException(status_code=_PROFILE_ERROR_STATUS[e.reason], detail=e.message)
    return ProfileResponse(secret_key=secret_key, has_secret_key=secret_key is not None)
