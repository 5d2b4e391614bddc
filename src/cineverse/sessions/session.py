"""Per-request session bag.

A ``Session`` is the data stored under one opaque id. It only records
what happened (``modified``, ``destroyed``, a new id after
``regenerate``); ``SessionMiddleware`` persists it after the handler
returns.
"""

from __future__ import annotations

import hmac
import secrets
from typing import Any

FLASH_PREFIX = "_flash_"
CSRF_KEY = "_csrf_token"


def new_session_id() -> str:
    return secrets.token_hex(20)


class Session:
    """Key/value data for one visitor.

    Flash values are read once::

        session.flash("success", "Profile updated")
        session.get_flash("success")  # "Profile updated"
        session.get_flash("success")  # None
    """

    __slots__ = ("_data", "destroyed", "id", "modified", "previous_id")

    def __init__(self, session_id: str | None = None, data: dict[str, Any] | None = None) -> None:
        self.id = session_id or new_session_id()
        self._data: dict[str, Any] = dict(data or {})
        self.modified = False
        self.destroyed = False
        self.previous_id: str | None = None

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.modified = True

    def has(self, key: str) -> bool:
        return key in self._data

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self.modified = True

    def pull(self, key: str, default: Any = None) -> Any:
        """Read and remove *key*."""
        if key not in self._data:
            return default
        self.modified = True
        return self._data.pop(key)

    def all(self) -> dict[str, Any]:
        return dict(self._data)

    def clear(self) -> None:
        self._data.clear()
        self.modified = True

    # -- Flash messages --

    def flash(self, key: str, value: Any) -> None:
        self.set(f"{FLASH_PREFIX}{key}", value)

    def get_flash(self, key: str, default: Any = None) -> Any:
        return self.pull(f"{FLASH_PREFIX}{key}", default)

    def has_flash(self, key: str) -> bool:
        return self.has(f"{FLASH_PREFIX}{key}")

    # -- CSRF --

    def csrf_token(self) -> str:
        token = self._data.get(CSRF_KEY)
        if not token:
            token = secrets.token_hex(32)
            self.set(CSRF_KEY, token)
        return token

    def verify_csrf(self, token: str | None) -> bool:
        expected = self._data.get(CSRF_KEY)
        if not expected or not token:
            return False
        return hmac.compare_digest(str(expected), str(token))

    # -- Lifecycle --

    def regenerate(self) -> str:
        """Move the data to a fresh id (login, privilege change).

        The old id is remembered so the middleware can delete it.
        """
        if self.previous_id is None:
            self.previous_id = self.id
        self.id = new_session_id()
        self.modified = True
        return self.id

    def destroy(self) -> None:
        self._data.clear()
        self.destroyed = True
        self.modified = True

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"Session(id={self.id[:8]}..., keys={sorted(self._data)})"
