"""Tests for cineverse.auth.AuthManager against a migrated database."""

from datetime import UTC, datetime, timedelta

import pytest

from cineverse.app import App
from cineverse.auth.manager import AuthManager
from cineverse.errors import AuthenticationError, ValidationError
from cineverse.testing import TestClient

ALICE = {"username": "alice", "email": "alice@example.com", "password": "secret123"}


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 1, 9, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def auth(app: App, client: TestClient, clock: FakeClock) -> AuthManager:
    # client has run startup, so the schema exists
    ctx = app.context
    return AuthManager(ctx.db, ctx.tokens, clock=clock)


class TestRegister:
    async def test_returns_public_fields(self, auth: AuthManager) -> None:
        user = await auth.register(ALICE)
        assert user["username"] == "alice"
        assert user["role"] == "user"
        assert user["status"] == "active"
        assert "password" not in user
        assert "remember_token" not in user

    async def test_password_is_hashed(self, auth: AuthManager) -> None:
        await auth.register(ALICE)
        stored = await auth.find_by_identifier("alice")
        assert stored.password.startswith("$argon2id$")

    async def test_field_errors(self, auth: AuthManager) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await auth.register({"username": "al", "email": "nope", "password": "short"})
        assert set(exc_info.value.errors) == {"username", "email", "password"}

    async def test_duplicates_rejected(self, auth: AuthManager) -> None:
        await auth.register(ALICE)
        with pytest.raises(ValidationError) as exc_info:
            await auth.register(ALICE)
        assert set(exc_info.value.errors) == {"username", "email"}

    async def test_confirmation_must_match(self, auth: AuthManager) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await auth.register({**ALICE, "password_confirmation": "different1"})
        assert "password" in exc_info.value.errors


class TestLogin:
    async def test_by_username_or_email(self, auth: AuthManager) -> None:
        await auth.register(ALICE)
        by_name = await auth.login("alice", "secret123")
        by_email = await auth.login("alice@example.com", "secret123")
        assert by_name.user.id == by_email.user.id
        assert by_name.token
        assert "password" not in by_name.to_dict()["user"]
        assert by_name.to_dict()["token_type"] == "Bearer"

    async def test_unknown_user(self, auth: AuthManager) -> None:
        with pytest.raises(AuthenticationError) as exc_info:
            await auth.login("nobody", "secret123")
        assert exc_info.value.status == 401

    async def test_records_last_login(self, auth: AuthManager, clock: FakeClock) -> None:
        await auth.register(ALICE)
        result = await auth.login("alice", "secret123")
        assert result.user.last_login_at == "2026-03-01 09:00:00"

    async def test_inactive_account(self, auth: AuthManager) -> None:
        user = await auth.register(ALICE)
        await auth.db.update("users", {"status": "suspended"}, {"id": user["id"]})
        with pytest.raises(AuthenticationError, match="not active"):
            await auth.login("alice", "secret123")

    async def test_remember_me(self, auth: AuthManager) -> None:
        await auth.register(ALICE)
        result = await auth.login("alice", "secret123", remember=True)
        assert result.remember_token is not None
        user = await auth.user_from_remember_cookie(result.remember_token)
        assert user is not None
        assert user.username == "alice"
        user_id, _, secret = result.remember_token.partition("|")
        assert await auth.user_from_remember_cookie(f"{user_id}|{secret}x") is None
        assert await auth.user_from_remember_cookie("garbage") is None


class TestLockout:
    async def test_locks_after_five_failures(self, auth: AuthManager) -> None:
        await auth.register(ALICE)
        for _ in range(5):
            with pytest.raises(AuthenticationError) as exc_info:
                await auth.login("alice", "wrong-password")
            assert exc_info.value.status == 401

        # locked: even the right password is refused
        with pytest.raises(AuthenticationError) as exc_info:
            await auth.login("alice", "secret123")
        assert exc_info.value.status == 423

        stored = await auth.find_by_identifier("alice")
        assert stored.login_attempts == 5
        assert stored.locked_until == "2026-03-01 09:15:00"

    async def test_unlocks_after_deadline_and_resets(self, auth: AuthManager, clock: FakeClock) -> None:
        await auth.register(ALICE)
        for _ in range(5):
            with pytest.raises(AuthenticationError):
                await auth.login("alice", "wrong-password")

        clock.advance(minutes=16)
        result = await auth.login("alice", "secret123")
        assert result.user.login_attempts == 0
        assert result.user.locked_until is None

    async def test_failures_are_logged(self, auth: AuthManager) -> None:
        user = await auth.register(ALICE)
        with pytest.raises(AuthenticationError):
            await auth.login("alice", "wrong-password")
        types = await (
            auth.db.table("user_activities").where("user_id", user["id"]).order_by("id").pluck("activity_type")
        )
        assert types == ["register", "failed_login"]


class TestPasswordReset:
    async def test_same_message_for_unknown_email(self, auth: AuthManager) -> None:
        await auth.register(ALICE)
        known = await auth.request_password_reset("alice@example.com")
        unknown = await auth.request_password_reset("ghost@example.com")
        assert known.message == unknown.message
        assert known.token is not None
        assert unknown.token is None

    async def test_only_hash_is_stored(self, auth: AuthManager) -> None:
        await auth.register(ALICE)
        request = await auth.request_password_reset("alice@example.com")
        stored = await auth.db.table("password_reset_tokens").pluck("token")
        assert stored and request.token not in stored

    async def test_reset_flow(self, auth: AuthManager) -> None:
        await auth.register(ALICE)
        request = await auth.request_password_reset("alice@example.com")
        await auth.reset_password(request.token, "new-secret-1")
        assert (await auth.login("alice", "new-secret-1")).user.username == "alice"
        with pytest.raises(AuthenticationError):
            await auth.login("alice", "secret123")

    async def test_reset_targets_email_owner_not_username_match(self, auth: AuthManager) -> None:
        # registered first, with a username equal to the real owner's email
        await auth.register(
            {"username": "victim@example.com", "email": "mallory@example.com", "password": "mallory123"}
        )
        await auth.register({"username": "victim", "email": "victim@example.com", "password": "secret123"})

        request = await auth.request_password_reset("victim@example.com")
        user = await auth.reset_password(request.token, "brandnew123")
        assert user.email == "victim@example.com"

        assert (await auth.login("victim", "brandnew123")).user.username == "victim"
        assert (await auth.login("mallory@example.com", "mallory123")).user.username == "victim@example.com"

    async def test_token_single_use(self, auth: AuthManager) -> None:
        await auth.register(ALICE)
        request = await auth.request_password_reset("alice@example.com")
        await auth.reset_password(request.token, "new-secret-1")
        with pytest.raises(ValidationError):
            await auth.reset_password(request.token, "new-secret-2")

    async def test_expired_token(self, auth: AuthManager, clock: FakeClock) -> None:
        await auth.register(ALICE)
        request = await auth.request_password_reset("alice@example.com")
        clock.advance(hours=2)
        with pytest.raises(ValidationError):
            await auth.reset_password(request.token, "new-secret-1")

    async def test_short_password(self, auth: AuthManager) -> None:
        await auth.register(ALICE)
        request = await auth.request_password_reset("alice@example.com")
        with pytest.raises(ValidationError) as exc_info:
            await auth.reset_password(request.token, "short")
        assert "password" in exc_info.value.errors


class TestEmailVerification:
    async def test_verify(self, auth: AuthManager) -> None:
        user = await auth.register(ALICE)
        token = await auth.create_verification_token(user["id"])
        verified = await auth.verify_email(token)
        assert verified.email_verified
        with pytest.raises(ValidationError):
            await auth.verify_email(token)

    async def test_resend_replaces_old_token(self, auth: AuthManager) -> None:
        user = await auth.register(ALICE)
        old = await auth.create_verification_token(user["id"])
        await auth.create_verification_token(user["id"])
        with pytest.raises(ValidationError):
            await auth.verify_email(old)


class TestChangePassword:
    async def test_requires_current(self, auth: AuthManager) -> None:
        await auth.register(ALICE)
        user = await auth.find_by_identifier("alice")
        with pytest.raises(ValidationError):
            await auth.change_password(user, "wrong-current", "another-secret")
        await auth.change_password(user, "secret123", "another-secret")
        assert (await auth.login("alice", "another-secret")).user.id == user.id
