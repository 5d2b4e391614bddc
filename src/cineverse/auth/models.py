"""Account records as read from the ``users`` table."""

from dataclasses import asdict, dataclass
from typing import Any

_PRIVATE_FIELDS = frozenset({"password", "remember_token"})


@dataclass(frozen=True, slots=True)
class User:
    id: int
    uuid: str
    username: str
    email: str
    password: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    date_of_birth: str | None = None
    gender: str | None = None
    country: str = "RW"
    language: str = "en"
    avatar: str | None = None
    bio: str | None = None
    role: str = "user"
    status: str = "active"
    email_verified_at: str | None = None
    remember_token: str | None = None
    login_attempts: int = 0
    locked_until: str | None = None
    last_login_at: str | None = None
    last_login_ip: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def email_verified(self) -> bool:
        return bool(self.email_verified_at)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part) or self.username

    def to_public(self) -> dict[str, Any]:
        """Row data safe to send to a client: no password hash, no remember token."""
        return {k: v for k, v in asdict(self).items() if k not in _PRIVATE_FIELDS}
