"""Password hashing, access tokens, lockout, and opaque token helpers."""

import hashlib
import secrets

from cineverse.security.lockout import LockoutPolicy
from cineverse.security.passwords import hash_password, needs_rehash, verify_password
from cineverse.security.tokens import IssuedToken, TokenService


def generate_token(nbytes: int = 32) -> str:
    """Random hex token for reset links, verification links and remember-me."""
    return secrets.token_hex(nbytes)


def hash_token(token: str) -> str:
    """sha256 hex digest; only this form of an opaque token is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


__all__ = [
    "IssuedToken",
    "LockoutPolicy",
    "TokenService",
    "generate_token",
    "hash_password",
    "hash_token",
    "needs_rehash",
    "verify_password",
]
