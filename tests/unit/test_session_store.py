"""
Unit tests for the Session Store.
"""

import asyncio

import pytest

from vbagen.core.exceptions import AuthError, ProfileError
from vbagen.models.enums import AuthErrorReason, ProfileErrorReason

EMAIL = "user@example.com"
PASSWORD = "password123"


class TestResolveSession:
    """Tests for initial resolution and re-validation."""

    @pytest.mark.asyncio
    async def test_init_without_snapshot(self, make_session_store):
        store = make_session_store()
        assert store.loading is True

        identity = await store.init()

        assert identity is None
        assert store.loading is False

    @pytest.mark.asyncio
    async def test_wait_until_resolved_blocks_until_init(self, make_session_store):
        store = make_session_store()
        waiter = asyncio.create_task(store.wait_until_resolved())
        await asyncio.sleep(0)
        assert not waiter.done()

        await store.init()
        await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_init_restores_persisted_session(self, make_session_store, fake_backend):
        fake_backend.add_account(EMAIL, PASSWORD, secret_key="AIza-key")
        first = make_session_store("window-a")
        await first.init()
        await first.sign_in(EMAIL, PASSWORD)

        # a window opened later picks the session up from storage
        second = make_session_store("window-b")
        identity = await second.init()

        assert identity is not None
        assert identity.email == EMAIL
        assert identity.secret_key == "AIza-key"

    @pytest.mark.asyncio
    async def test_malformed_snapshot_is_ignored(self, make_session_store, storage, settings):
        await storage.set(settings.SESSION_STORAGE_KEY, {"unexpected": True}, origin="elsewhere")
        store = make_session_store()

        assert await store.init() is None
        assert store.loading is False

    @pytest.mark.asyncio
    async def test_revoked_session_clears_identity(
        self, make_session_store, fake_backend, storage, settings
    ):
        fake_backend.add_account(EMAIL, PASSWORD)
        store = make_session_store()
        await store.init()
        await store.sign_in(EMAIL, PASSWORD)

        fake_backend.tokens.clear()
        await store.handle_visibility_change(True)

        assert store.identity is None
        assert storage.get(settings.SESSION_STORAGE_KEY) is None

    @pytest.mark.asyncio
    async def test_backend_failure_clears_identity(self, make_session_store, fake_backend):
        fake_backend.add_account(EMAIL, PASSWORD)
        store = make_session_store()
        await store.init()
        await store.sign_in(EMAIL, PASSWORD)

        fake_backend.failures["get_session"] = AuthError(AuthErrorReason.NETWORK)
        assert await store.resolve_session() is None

    @pytest.mark.asyncio
    async def test_hidden_window_does_not_revalidate(self, make_session_store, fake_backend):
        fake_backend.add_account(EMAIL, PASSWORD)
        store = make_session_store()
        await store.init()
        await store.sign_in(EMAIL, PASSWORD)
        calls_before = fake_backend.calls["get_session"]

        await store.handle_visibility_change(False)

        assert fake_backend.calls["get_session"] == calls_before

    @pytest.mark.asyncio
    async def test_visibility_picks_up_key_changed_elsewhere(
        self, make_session_store, fake_backend
    ):
        user_id = fake_backend.add_account(EMAIL, PASSWORD)
        store = make_session_store()
        await store.init()
        await store.sign_in(EMAIL, PASSWORD)

        fake_backend.secret_keys[user_id] = "AIza-from-another-device"
        identity = await store.handle_visibility_change(True)

        assert identity.secret_key == "AIza-from-another-device"


class TestSignInAndOut:
    """Tests for sign-in and sign-out."""

    @pytest.mark.asyncio
    async def test_sign_in_populates_and_persists(
        self, make_session_store, fake_backend, storage, settings
    ):
        fake_backend.add_account(EMAIL, PASSWORD, secret_key="AIza-key")
        store = make_session_store()
        await store.init()

        identity = await store.sign_in(EMAIL, PASSWORD)

        assert identity.email == EMAIL
        assert identity.has_secret_key
        snapshot = storage.get(settings.SESSION_STORAGE_KEY)
        assert snapshot["identity"]["email"] == EMAIL
        assert snapshot["access_token"] == store.access_token

    @pytest.mark.asyncio
    async def test_sign_in_failure_leaves_no_state(
        self, make_session_store, fake_backend, storage, settings
    ):
        fake_backend.add_account(EMAIL, PASSWORD)
        store = make_session_store()
        await store.init()

        with pytest.raises(AuthError) as exc_info:
            await store.sign_in(EMAIL, "wrong-password")

        assert exc_info.value.reason == AuthErrorReason.INVALID_CREDENTIALS
        assert store.identity is None
        assert storage.get(settings.SESSION_STORAGE_KEY) is None

    @pytest.mark.asyncio
    async def test_sign_out_clears_everything(
        self, make_session_store, fake_backend, storage, settings
    ):
        fake_backend.add_account(EMAIL, PASSWORD, secret_key="AIza-key")
        store = make_session_store()
        await store.init()
        await store.sign_in(EMAIL, PASSWORD)
        token = store.access_token

        await store.sign_out()

        assert store.identity is None
        assert store.access_token is None
        assert storage.get(settings.SESSION_STORAGE_KEY) is None
        assert token not in fake_backend.tokens

    @pytest.mark.asyncio
    async def test_sign_out_clears_locally_when_backend_unreachable(
        self, make_session_store, fake_backend, storage, settings
    ):
        fake_backend.add_account(EMAIL, PASSWORD)
        store = make_session_store()
        await store.init()
        await store.sign_in(EMAIL, PASSWORD)
        fake_backend.failures["sign_out"] = AuthError(AuthErrorReason.NETWORK)

        with pytest.raises(AuthError):
            await store.sign_out()

        assert store.identity is None
        assert storage.get(settings.SESSION_STORAGE_KEY) is None

    @pytest.mark.asyncio
    async def test_listeners_follow_identity(self, make_session_store, fake_backend):
        fake_backend.add_account(EMAIL, PASSWORD)
        store = make_session_store()
        seen = []

        async def listener(identity):
            seen.append(identity.email if identity else None)

        store.subscribe(listener)
        await store.init()
        await store.sign_in(EMAIL, PASSWORD)
        await store.sign_out()

        assert seen == [EMAIL, None]


class TestSignUpCooldown:
    """Tests for the local sign-up cooldown after rate limiting."""

    @pytest.mark.asyncio
    async def test_rate_limited_sign_up_starts_cooldown(
        self, make_session_store, fake_backend, clock
    ):
        store = make_session_store()
        await store.init()
        fake_backend.failures["sign_up"] = AuthError(AuthErrorReason.RATE_LIMITED)

        with pytest.raises(AuthError) as first:
            await store.sign_up(EMAIL, PASSWORD)
        assert first.value.reason == AuthErrorReason.RATE_LIMITED
        assert store.signup_cooldown_remaining == 60
        assert store.is_signup_disabled

        clock.advance(30)
        with pytest.raises(AuthError) as second:
            await store.sign_up(EMAIL, PASSWORD)
        assert second.value.reason == AuthErrorReason.RATE_LIMITED
        assert second.value.retry_after == 30
        # rejected locally
        assert fake_backend.calls["sign_up"] == 1

    @pytest.mark.asyncio
    async def test_sign_up_allowed_after_cooldown(self, make_session_store, fake_backend, clock):
        store = make_session_store()
        await store.init()
        fake_backend.failures["sign_up"] = AuthError(AuthErrorReason.RATE_LIMITED)
        with pytest.raises(AuthError):
            await store.sign_up(EMAIL, PASSWORD)

        clock.advance(61)
        identity = await store.sign_up(EMAIL, PASSWORD)

        assert store.signup_cooldown_remaining == 0
        assert identity.email == EMAIL
        assert identity.secret_key is None
        assert fake_backend.calls["sign_up"] == 2

    @pytest.mark.asyncio
    async def test_other_failures_do_not_start_cooldown(self, make_session_store, fake_backend):
        fake_backend.add_account(EMAIL, PASSWORD)
        store = make_session_store()
        await store.init()

        with pytest.raises(AuthError) as exc_info:
            await store.sign_up(EMAIL, PASSWORD)

        assert exc_info.value.reason == AuthErrorReason.ACCOUNT_EXISTS
        assert store.signup_cooldown_remaining == 0


class TestUpdateSecretKey:
    """Tests for API key updates."""

    @pytest.mark.asyncio
    async def test_update_is_idempotent(self, make_session_store, fake_backend):
        user_id = fake_backend.add_account(EMAIL, PASSWORD)
        store = make_session_store()
        await store.init()
        await store.sign_in(EMAIL, PASSWORD)

        first = await store.update_secret_key("AIza-key")
        second = await store.update_secret_key("AIza-key")

        assert first == second
        assert store.identity.secret_key == "AIza-key"
        assert fake_backend.secret_keys[user_id] == "AIza-key"

    @pytest.mark.asyncio
    async def test_blank_key_means_no_key(self, make_session_store, fake_backend):
        fake_backend.add_account(EMAIL, PASSWORD, secret_key="AIza-key")
        store = make_session_store()
        await store.init()
        await store.sign_in(EMAIL, PASSWORD)

        identity = await store.update_secret_key("   ")

        assert identity.secret_key is None
        assert not identity.has_secret_key

    @pytest.mark.asyncio
    async def test_update_requires_identity(self, make_session_store, fake_backend):
        store = make_session_store()
        await store.init()

        with pytest.raises(AuthError) as exc_info:
            await store.update_secret_key("AIza-key")

        assert exc_info.value.reason == AuthErrorReason.NOT_AUTHENTICATED
        assert fake_backend.calls["upsert_secret_key"] == 0

    @pytest.mark.asyncio
    async def test_failed_update_keeps_previous_key(self, make_session_store, fake_backend):
        fake_backend.add_account(EMAIL, PASSWORD, secret_key="AIza-old")
        store = make_session_store()
        await store.init()
        await store.sign_in(EMAIL, PASSWORD)
        fake_backend.failures["upsert_secret_key"] = ProfileError(ProfileErrorReason.WRITE_CONFLICT)

        with pytest.raises(ProfileError):
            await store.update_secret_key("AIza-new")

        assert store.identity.secret_key == "AIza-old"


class TestStaleResults:
    """Tests for discarding results that belong to a previous identity."""

    @pytest.mark.asyncio
    async def test_stale_resolution_is_discarded(self, make_session_store, fake_backend):
        fake_backend.add_account(EMAIL, PASSWORD)
        fake_backend.add_account("other@example.com", PASSWORD)
        store = make_session_store()
        await store.init()
        await store.sign_in(EMAIL, PASSWORD)

        pause = asyncio.Event()
        fake_backend.pauses["get_session"] = pause
        resolution = asyncio.create_task(store.resolve_session())
        await asyncio.sleep(0)

        await store.sign_in("other@example.com", PASSWORD)
        pause.set()
        await resolution

        assert store.identity.email == "other@example.com"

    @pytest.mark.asyncio
    async def test_key_update_discarded_after_sign_out(
        self, make_session_store, fake_backend, storage, settings
    ):
        fake_backend.add_account(EMAIL, PASSWORD)
        store = make_session_store()
        await store.init()
        await store.sign_in(EMAIL, PASSWORD)

        pause = asyncio.Event()
        fake_backend.pauses["upsert_secret_key"] = pause
        update = asyncio.create_task(store.update_secret_key("AIza-key"))
        await asyncio.sleep(0)

        await store.sign_out()
        pause.set()

        with pytest.raises(AuthError):
            await update
        assert store.identity is None
        assert storage.get(settings.SESSION_STORAGE_KEY) is None


class TestCrossWindow:
    """Tests for coherence between windows sharing one storage."""

    @pytest.mark.asyncio
    async def test_sign_in_and_out_propagate(self, make_session_store, fake_backend):
        fake_backend.add_account(EMAIL, PASSWORD, secret_key="AIza-key")
        window_a = make_session_store("window-a")
        window_b = make_session_store("window-b")
        await window_a.init()
        await window_b.init()

        await window_a.sign_in(EMAIL, PASSWORD)
        assert window_b.identity == window_a.identity

        await window_a.sign_out()
        assert window_b.identity is None

    @pytest.mark.asyncio
    async def test_key_update_propagates(self, make_session_store, fake_backend):
        fake_backend.add_account(EMAIL, PASSWORD)
        window_a = make_session_store("window-a")
        window_b = make_session_store("window-b")
        await window_a.init()
        await window_b.init()
        await window_a.sign_in(EMAIL, PASSWORD)

        await window_b.update_secret_key("AIza-key")

        assert window_a.identity.secret_key == "AIza-key"

    @pytest.mark.asyncio
    async def test_teardown_stops_following(self, make_session_store, fake_backend):
        fake_backend.add_account(EMAIL, PASSWORD)
        window_a = make_session_store("window-a")
        window_b = make_session_store("window-b")
        await window_a.init()
        await window_b.init()
        window_b.teardown()

        await window_a.sign_in(EMAIL, PASSWORD)

        assert window_b.identity is None
