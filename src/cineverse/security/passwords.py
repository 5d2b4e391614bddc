"""Password hashing with argon2id (``argon2-cffi``).

Produces PHC-format strings (``$argon2id$v=19$...``) safe for a TEXT
column. Plaintext never leaves this module.

Usage::

    from cineverse.security.passwords import hash_password, verify_password

    hashed = hash_password("my-password")
    ok = verify_password("my-password", hashed)
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash *password* with argon2id.

    Raises:
        ValueError: For an empty password.
    """
    if not password:
        msg = "Password must not be empty."
        raise ValueError(msg)
    return _hasher.hash(password)


def verify_password(password: str, phc_hash: str | None) -> bool:
    """True when *password* matches *phc_hash*; False for a mismatch or a malformed hash."""
    if not password or not phc_hash:
        return False
    try:
        return _hasher.verify(phc_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(phc_hash: str) -> bool:
    """True when *phc_hash* was made with weaker parameters than the current ones."""
    return _hasher.check_needs_rehash(phc_hash)
