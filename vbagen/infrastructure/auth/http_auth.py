"""
HTTP auth/profile backend.

Talks to the ``/api/auth`` routes of a running vbagen server with httpx and
turns HTTP failures into classified AuthError/ProfileError exceptions.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from vbagen.core.config import Settings
from vbagen.core.exceptions import AuthError, ProfileError
from vbagen.core.logger import logger
from vbagen.interfaces.auth_backend import IAuthBackend
from vbagen.models.enums import AuthErrorReason, ProfileErrorReason
from vbagen.models.user import AuthSession, normalize_secret_key

_AUTH_STATUS_REASONS = {
    400: AuthErrorReason.INVALID_CREDENTIALS,
    401: AuthErrorReason.INVALID_CREDENTIALS,
    409: AuthErrorReason.ACCOUNT_EXISTS,
    422: AuthErrorReason.INVALID_CREDENTIALS,
    429: AuthErrorReason.RATE_LIMITED,
}


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or body)
    return str(body)


def _retry_after(response: httpx.Response) -> Optional[int]:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class HttpAuthBackend(IAuthBackend):
    """Auth backend reached over HTTP."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self._client = client or httpx.AsyncClient(
            base_url=settings.API_BASE_URL,
            timeout=settings.API_TIMEOUT_SECONDS,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, token: str | None = None, **kwargs: Any) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(f"Auth backend unreachable ({method} {url}): {exc}")
            raise AuthError(AuthErrorReason.NETWORK, "Auth backend unreachable") from exc
        if response.status_code >= 500:
            raise AuthError(AuthErrorReason.NETWORK, f"Auth backend error {response.status_code}")
        return response

    def _raise_auth_error(self, response: httpx.Response) -> None:
        reason = _AUTH_STATUS_REASONS.get(response.status_code, AuthErrorReason.NETWORK)
        raise AuthError(reason, _detail(response), retry_after=_retry_after(response))

    def _to_session(self, body: dict[str, Any]) -> AuthSession:
        return AuthSession(
            access_token=body["access_token"],
            user_id=body["user"]["id"],
            email=body["user"]["email"],
            expires_at=body["expires_at"],
        )

    async def sign_in(self, email: str, password: str) -> AuthSession:
        response = await self._request(
            "POST", "/api/auth/login", json={"email": email, "password": password}
        )
        if response.status_code != 200:
            self._raise_auth_error(response)
        return self._to_session(response.json())

    async def sign_up(self, email: str, password: str) -> AuthSession:
        response = await self._request(
            "POST", "/api/auth/register", json={"email": email, "password": password}
        )
        if response.status_code not in (200, 201):
            self._raise_auth_error(response)
        return self._to_session(response.json())

    async def sign_out(self, access_token: str) -> None:
        response = await self._request("POST", "/api/auth/logout", token=access_token)
        if response.status_code not in (200, 204, 401):
            self._raise_auth_error(response)

    async def get_session(self, access_token: str) -> Optional[AuthSession]:
        response = await self._request("GET", "/api/auth/session", token=access_token)
        if response.status_code == 401:
            return None
        if response.status_code != 200:
            self._raise_auth_error(response)
        return self._to_session(response.json())

    async def get_secret_key(self, session: AuthSession) -> Optional[str]:
        response = await self._request("GET", "/api/auth/profile", token=session.access_token)
        if response.status_code == 404:
            return None
        if response.status_code == 401:
            raise AuthError(AuthErrorReason.NOT_AUTHENTICATED, _detail(response))
        if response.status_code != 200:
            self._raise_auth_error(response)
        return normalize_secret_key(response.json().get("secret_key"))

    async def upsert_secret_key(self, session: AuthSession, secret_key: Optional[str]) -> Optional[str]:
        response = await self._request(
            "PUT",
            "/api/auth/profile/secret-key",
            token=session.access_token,
            json={"secret_key": normalize_secret_key(secret_key)},
        )
        if response.status_code == 401:
            raise AuthError(AuthErrorReason.NOT_AUTHENTICATED, _detail(response))
        if response.status_code == 404:
            raise ProfileError(ProfileErrorReason.NOT_FOUND, _detail(response))
        if response.status_code == 409:
            raise ProfileError(ProfileErrorReason.WRITE_CONFLICT, _detail(response))
        if response.status_code != 200:
            self._raise_auth_error(response)
        return normalize_secret_key(response.json().get("secret_key"))
