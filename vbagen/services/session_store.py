"""
Session store.

Single source of truth for "who is signed in and with what API key" inside
one client window. Several windows share one session storage; each keeps its
own SessionStore and re-resolves whenever another window changes the stored
session, or when the window becomes visible again.

Identity changes are applied only after the backend confirmed them, and every
asynchronous result is checked against an epoch counter so that a result
computed for an identity that has since changed is discarded.
"""

from __future__ import annotations

import asyncio
import math
import time
from typing import Awaitable, Callable, Optional
from uuid import uuid4

from vbagen.core.config import Settings, get_settings
from vbagen.core.exceptions import AuthError, ProfileError
from vbagen.core.logger import logger
from vbagen.interfaces.auth_backend import IAuthBackend
from vbagen.interfaces.session_storage import ISessionStorage, StorageEvent
from vbagen.models.enums import AuthErrorReason
from vbagen.models.user import AuthSession, Identity, SessionSnapshot, normalize_secret_key

IdentityListener = Callable[[Optional[Identity]], Awaitable[None]]


class SessionStore:
    """Authenticated identity of one client window."""

    def __init__(
        self,
        backend: IAuthBackend,
        storage: ISessionStorage,
        settings: Settings | None = None,
        window_id: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._backend = backend
        self._storage = storage
        self._settings = settings or get_settings()
        self._clock = clock
        self.window_id = window_id or uuid4().hex

        self._identity: Optional[Identity] = None
        self._session: Optional[AuthSession] = None
        self._loading = True
        self._resolved = asyncio.Event()
        self._epoch = 0
        self._cooldown_until: Optional[float] = None
        self._listeners: list[IdentityListener] = []
        self._unsubscribe_storage: Optional[Callable[[], None]] = None

    # ===========================================
    # State
    # ===========================================

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def access_token(self) -> Optional[str]:
        return self._session.access_token if self._session else None

    @property
    def loading(self) -> bool:
        """True until the first session resolution has finished."""
        return self._loading

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def signup_cooldown_remaining(self) -> int:
        """Seconds left before sign-up may be attempted again (0 when allowed)."""
        if self._cooldown_until is None:
            return 0
        remaining = self._cooldown_until - self._clock()
        if remaining <= 0:
            self._cooldown_until = None
            return 0
        return math.ceil(remaining)

    @property
    def is_signup_disabled(self) -> bool:
        return self.signup_cooldown_remaining > 0

    async def wait_until_resolved(self) -> None:
        await self._resolved.wait()

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Call ``listener`` with the new identity whenever it changes."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ===========================================
    # Lifecycle
    # ===========================================

    async def init(self) -> Optional[Identity]:
        """Start listening to other windows and resolve the persisted session."""
        if self._unsubscribe_storage is None:
            self._unsubscribe_storage = self._storage.subscribe(
                self.window_id, self._on_storage_event
            )
        return await self.resolve_session()

    def teardown(self) -> None:
        """Stop listening to other windows. Persisted session is left untouched."""
        if self._unsubscribe_storage is not None:
            self._unsubscribe_storage()
            self._unsubscribe_storage = None
        self._listeners.clear()

    async def _on_storage_event(self, event: StorageEvent) -> None:
        if event.key != self._settings.SESSION_STORAGE_KEY:
            return
        logger.debug(f"Window {self.window_id}: session changed in window {event.origin}")
        await self.resolve_session()

    async def handle_visibility_change(self, visible: bool) -> Optional[Identity]:
        """Re-validate the session when the window becomes visible again."""
        if not visible:
            return self._identity
        return await self.resolve_session()

    # ===========================================
    # Internal helpers
    # ===========================================

    def _read_snapshot(self) -> Optional[SessionSnapshot]:
        raw = self._storage.get(self._settings.SESSION_STORAGE_KEY)
        if not raw:
            return None
        try:
            return SessionSnapshot.model_validate(raw)
        except ValueError:
            logger.warning(f"Window {self.window_id}: ignoring malformed session snapshot")
            return None

    def _mark_resolved(self) -> None:
        self._loading = False
        self._resolved.set()

    async def _apply(self, identity: Optional[Identity], session: Optional[AuthSession]) -> None:
        previous = self._identity
        if (previous.id if previous else None) != (identity.id if identity else None):
            self._epoch += 1
        self._identity = identity
        self._session = session if identity else None

        key = self._settings.SESSION_STORAGE_KEY
        if identity and session:
            snapshot = SessionSnapshot(access_token=session.access_token, identity=identity)
            await self._storage.set(key, snapshot.model_dump(mode="json"), origin=self.window_id)
        else:
            await self._storage.remove(key, origin=self.window_id)

        if identity != previous:
            for listener in list(self._listeners):
                await listener(identity)

    async def _identity_for(self, session: AuthSession) -> Identity:
        secret_key = await self._backend.get_secret_key(session)
        return Identity(
            id=session.user_id,
            email=session.email,
            secret_key=normalize_secret_key(secret_key),
        )

    # ===========================================
    # Operations
    # ===========================================

    async def resolve_session(self) -> Optional[Identity]:
        """
        Rebuild the identity from the persisted session.

        Any failure or absence clears the identity. The result is dropped if
        the identity changed while the backend was being queried.
        """
        epoch = self._epoch
        identity: Optional[Identity] = None
        session: Optional[AuthSession] = None
        snapshot = self._read_snapshot()
        if snapshot is not None:
            try:
                session = await self._backend.get_session(snapshot.access_token)
                if session is not None:
                    identity = await self._identity_for(session)
            except (AuthError, ProfileError) as exc:
                logger.warning(f"Window {self.window_id}: session resolution failed: {exc.message}")
                identity, session = None, None

        if epoch != self._epoch:
            logger.debug(f"Window {self.window_id}: discarding stale session resolution")
        else:
            await self._apply(identity, session)
        self._mark_resolved()
        return self._identity

    async def sign_in(self, email: str, password: str) -> Identity:
        """
        Sign in and populate the identity.

        Raises:
            AuthError: INVALID_CREDENTIALS or NETWORK
        """
        session = await self._backend.sign_in(email, password)
        identity = await self._identity_for(session)
        self._epoch += 1
        await self._apply(identity, session)
        self._mark_resolved()
        return identity

    async def sign_up(self, email: str, password: str) -> Identity:
        """
        Register and populate the identity.

        After a rate-limited failure further attempts are rejected locally,
        without contacting the backend, for SIGNUP_COOLDOWN_SECONDS.

        Raises:
            AuthError: RATE_LIMITED (with retry_after), ACCOUNT_EXISTS,
                INVALID_CREDENTIALS or NETWORK
        """
        remaining = self.signup_cooldown_remaining
        if remaining > 0:
            raise AuthError(
                AuthErrorReason.RATE_LIMITED,
                f"Please wait {remaining} seconds before trying again",
                retry_after=remaining,
            )

        try:
            session = await self._backend.sign_up(email, password)
        except AuthError as exc:
            if exc.reason == AuthErrorReason.RATE_LIMITED:
                self._cooldown_until = self._clock() + self._settings.SIGNUP_COOLDOWN_SECONDS
                exc.retry_after = self._settings.SIGNUP_COOLDOWN_SECONDS
            raise

        identity = Identity(id=session.user_id, email=session.email, secret_key=None)
        self._epoch += 1
        await self._apply(identity, session)
        self._mark_resolved()
        return identity

    async def sign_out(self) -> None:
        """
        Revoke the session and clear the identity and persisted snapshot.

        Local state is cleared even if the backend could not be reached; the
        backend error is re-raised afterwards.
        """
        token = self.access_token
        self._epoch += 1
        try:
            if token:
                await self._backend.sign_out(token)
        finally:
            await self._apply(None, None)
            self._mark_resolved()

    async def update_secret_key(self, value: Optional[str]) -> Identity:
        """
        Save (or, with an empty value, remove) the API key on the profile.

        Idempotent; the local identity changes only after the backend stored
        the key.

        Raises:
            AuthError: NOT_AUTHENTICATED if nobody is signed in, or the
                identity changed while the key was being saved
            ProfileError: NOT_FOUND or WRITE_CONFLICT
        """
        identity, session = self._identity, self._session
        if identity is None or session is None:
            raise AuthError(AuthErrorReason.NOT_AUTHENTICATED, "User not authenticated")

        epoch = self._epoch
        stored = await self._backend.upsert_secret_key(session, normalize_secret_key(value))

        if epoch != self._epoch or self._identity is None or self._identity.id != identity.id:
            logger.info(f"Window {self.window_id}: identity changed while saving the API key")
            raise AuthError(AuthErrorReason.NOT_AUTHENTICATED, "Session changed during update")

        updated = self._identity.model_copy(update={"secret_key": normalize_secret_key(stored)})
        await self._apply(updated, self._session)
        return updated
