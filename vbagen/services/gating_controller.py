"""
Gating controller.

Privileged actions (creating a project, sending a message) need a signed-in
identity holding an API key. A requested action is kept pending while the
user signs in and/or provides a key, then executed exactly once:

    IDLE -> AWAITING_AUTH -> AWAITING_KEY -> READY -> IDLE

Either awaiting state can be cancelled back to IDLE, dropping the action.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Optional

from vbagen.core.exceptions import GatingError
from vbagen.core.logger import logger
from vbagen.models.enums import GateState
from vbagen.services.session_store import SessionStore

Action = Callable[[], Any]
TransitionListener = Callable[[GateState, GateState], None]


class GatingController:
    """Defers a privileged action until its preconditions hold."""

    def __init__(self, session_store: SessionStore):
        self._session_store = session_store
        self._state = GateState.IDLE
        self._pending: Optional[Action] = None
        self._transitions: list[tuple[GateState, GateState]] = []
        self._listeners: list[TransitionListener] = []
        self.last_result: Any = None

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def has_pending_action(self) -> bool:
        return self._pending is not None

    @property
    def transitions(self) -> list[tuple[GateState, GateState]]:
        """Every (from, to) transition taken so far."""
        return list(self._transitions)

    def subscribe(self, listener: TransitionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, new_state: GateState) -> None:
        old_state = self._state
        if new_state == old_state:
            return
        self._state = new_state
        self._transitions.append((old_state, new_state))
        logger.debug(f"Gate: {old_state.value} -> {new_state.value}")
        for listener in list(self._listeners):
            listener(old_state, new_state)

    def _require(self, *states: GateState) -> None:
        if self._state not in states:
            raise GatingError(
                f"Not allowed in state {self._state.value}",
                details={"state": self._state.value},
            )

    async def _advance(self) -> GateState:
        """Move to the first unmet precondition, or run the pending action."""
        identity = self._session_store.identity
        if identity is None:
            self._transition(GateState.AWAITING_AUTH)
            return self._state
        if not identity.has_secret_key:
            self._transition(GateState.AWAITING_KEY)
            return self._state

        self._transition(GateState.READY)
        action, self._pending = self._pending, None
        try:
            result = action() if action is not None else None
            if inspect.isawaitable(result):
                result = await result
            self.last_result = result
        finally:
            self._transition(GateState.IDLE)
        return GateState.READY

    # ===========================================
    # Operations
    # ===========================================

    async def request(self, action: Action) -> GateState:
        """
        Run ``action`` now if allowed, otherwise keep it pending.

        Waits for the initial session resolution first, so a user who is
        already signed in is never asked to sign in again.

        Returns:
            READY if the action ran (the controller is IDLE again afterwards),
            otherwise the awaiting state the controller stopped in.

        Raises:
            GatingError: If another action is already pending
        """
        self._require(GateState.IDLE)
        if self._pending is not None:
            raise GatingError("Another action is already pending")
        self._pending = action
        await self._session_store.wait_until_resolved()
        return await self._advance()

    async def submit_credentials(self, email: str, password: str) -> GateState:
        """
        Sign in from AWAITING_AUTH.

        Raises:
            AuthError: Sign-in failed; the controller stays in AWAITING_AUTH
        """
        self._require(GateState.AWAITING_AUTH)
        await self._session_store.sign_in(email, password)
        return await self._advance()

    async def submit_sign_up(self, email: str, password: str) -> GateState:
        """
        Register from AWAITING_AUTH.

        Raises:
            AuthError: Sign-up failed; the controller stays in AWAITING_AUTH
        """
        self._require(GateState.AWAITING_AUTH)
        await self._session_store.sign_up(email, password)
        return await self._advance()

    async def submit_secret_key(self, value: Optional[str]) -> GateState:
        """
        Save the API key from AWAITING_KEY.

        An empty value is stored as "no key" and keeps the controller waiting.

        Raises:
            AuthError, ProfileError: Saving failed; the state is unchanged
        """
        self._require(GateState.AWAITING_KEY)
        await self._session_store.update_secret_key(value)
        return await self._advance()

    async def resume(self) -> GateState:
        """Re-check preconditions after the identity changed by other means."""
        self._require(GateState.AWAITING_AUTH, GateState.AWAITING_KEY)
        return await self._advance()

    def cancel(self) -> None:
        """Drop the pending action and return to IDLE. No-op when idle."""
        if self._state in (GateState.AWAITING_AUTH, GateState.AWAITING_KEY):
            self._pending = None
            self._transition(GateState.IDLE)
