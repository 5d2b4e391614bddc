"""Login lockout policy.

The failure counter and lock deadline live on the user row
(``login_attempts``, ``locked_until``); this module only decides what
the next values are.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True, slots=True)
class LockoutPolicy:
    """Lock an account for ``lock_seconds`` after ``max_attempts`` failures."""

    max_attempts: int = 5
    lock_seconds: int = 900

    def register_failure(self, attempts: int, now: datetime) -> tuple[int, datetime | None]:
        """Next ``(login_attempts, locked_until)`` after one more failure."""
        attempts += 1
        if attempts >= self.max_attempts:
            return attempts, now + timedelta(seconds=self.lock_seconds)
        return attempts, None

    def is_locked(self, locked_until: datetime | None, now: datetime) -> bool:
        return locked_until is not None and locked_until > now

    def retry_after(self, locked_until: datetime, now: datetime) -> int:
        return max(1, int((locked_until - now).total_seconds()))
