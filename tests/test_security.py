"""Tests for cineverse.security: password hashing, bearer tokens, lockout policy."""

from dataclasses import dataclass
from datetime import datetime, timedelta

import jwt
import pytest

from cineverse.cache import Cache, MemoryCacheBackend
from cineverse.errors import AuthenticationError
from cineverse.security import generate_token, hash_token
from cineverse.security.lockout import LockoutPolicy
from cineverse.security.passwords import hash_password, needs_rehash, verify_password
from cineverse.security.tokens import TokenService

SECRET = "t" * 40


@dataclass(frozen=True, slots=True)
class Subject:
    id: int = 1
    username: str = "alice"
    role: str = "user"


class TestPasswords:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("secret123")
        assert hashed.startswith("$argon2id$")
        assert verify_password("secret123", hashed)
        assert not verify_password("secret124", hashed)

    def test_hashes_are_salted(self) -> None:
        assert hash_password("secret123") != hash_password("secret123")

    def test_malformed_hash_is_false(self) -> None:
        assert not verify_password("secret123", "not-a-hash")
        assert not verify_password("secret123", None)

    def test_empty_password_rejected(self) -> None:
        with pytest.raises(ValueError):
            hash_password("")

    def test_fresh_hash_needs_no_rehash(self) -> None:
        assert not needs_rehash(hash_password("secret123"))


class TestOpaqueTokens:
    def test_generate_is_random(self) -> None:
        assert generate_token() != generate_token()
        assert len(generate_token(16)) == 32

    def test_hash_is_stable_hex(self) -> None:
        assert hash_token("abc") == hash_token("abc")
        assert hash_token("abc") != hash_token("abd")
        assert len(hash_token("abc")) == 64


class TestTokenService:
    @pytest.fixture
    def tokens(self) -> TokenService:
        return TokenService(SECRET, cache=Cache(MemoryCacheBackend()), issuer="https://cineverse.test")

    async def test_issue_and_decode(self, tokens: TokenService) -> None:
        issued = tokens.issue(Subject())
        claims = await tokens.decode(issued.token)
        assert claims["user_id"] == 1
        assert claims["username"] == "alice"
        assert claims["role"] == "user"
        assert claims["exp"] - claims["iat"] == 3600
        assert issued.expires_in == 3600

    async def test_revoked_token_rejected(self, tokens: TokenService) -> None:
        issued = tokens.issue(Subject())
        await tokens.revoke(issued.claims)
        with pytest.raises(AuthenticationError, match="revoked"):
            await tokens.decode(issued.token)

    async def test_revocation_is_per_token(self, tokens: TokenService) -> None:
        first = tokens.issue(Subject())
        second = tokens.issue(Subject())
        await tokens.revoke(first.claims)
        assert (await tokens.decode(second.token))["jti"] == second.claims["jti"]

    async def test_wrong_secret(self, tokens: TokenService) -> None:
        other = TokenService("x" * 40, cache=Cache(MemoryCacheBackend()), issuer="https://cineverse.test")
        with pytest.raises(AuthenticationError, match="Invalid token"):
            await tokens.decode(other.issue(Subject()).token)

    async def test_wrong_issuer(self, tokens: TokenService) -> None:
        other = TokenService(SECRET, cache=Cache(MemoryCacheBackend()), issuer="https://elsewhere.test")
        with pytest.raises(AuthenticationError):
            await tokens.decode(other.issue(Subject()).token)

    async def test_expired(self, tokens: TokenService) -> None:
        claims = {**tokens.issue(Subject()).claims, "exp": 1, "iat": 0}
        token = jwt.encode(claims, SECRET, algorithm="HS256")
        with pytest.raises(AuthenticationError, match="expired"):
            await tokens.decode(token)

    async def test_garbage(self, tokens: TokenService) -> None:
        with pytest.raises(AuthenticationError):
            await tokens.decode("not.a.jwt")


class TestLockoutPolicy:
    NOW = datetime(2026, 1, 1, 12, 0, 0)

    def test_locks_on_fifth_failure(self) -> None:
        policy = LockoutPolicy()
        attempts, lock = policy.register_failure(3, self.NOW)
        assert (attempts, lock) == (4, None)
        attempts, lock = policy.register_failure(attempts, self.NOW)
        assert attempts == 5
        assert lock == self.NOW + timedelta(minutes=15)

    def test_is_locked_until_deadline(self) -> None:
        policy = LockoutPolicy()
        until = self.NOW + timedelta(minutes=15)
        assert policy.is_locked(until, self.NOW)
        assert not policy.is_locked(until, until)
        assert not policy.is_locked(None, self.NOW)

    def test_retry_after(self) -> None:
        policy = LockoutPolicy()
        assert policy.retry_after(self.NOW + timedelta(seconds=90), self.NOW) == 90
        assert policy.retry_after(self.NOW, self.NOW) == 1
