"""Validation rules.

Each rule is a callable with the signature::

    def rule(value: str) -> str | None:
        '''Return error message, or None if valid.'''

Parameterized rules are factories returning a rule. Any callable of
that shape works with ``validate()``.
"""

import re
from collections.abc import Callable
from typing import TypeAlias

Validator: TypeAlias = Callable[[str], str | None]


def required(value: str) -> str | None:
    """Field must be present and non-empty."""
    if not value or not value.strip():
        return "This field is required"
    return None


def max_length(n: int) -> Validator:
    def check(value: str) -> str | None:
        if len(value) > n:
            return f"Must be at most {n} characters"
        return None

    return check


def min_length(n: int) -> Validator:
    def check(value: str) -> str | None:
        if len(value) < n:
            return f"Must be at least {n} characters"
        return None

    return check


# Structure only, not deliverability
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")


def email(value: str) -> str | None:
    if not _EMAIL_RE.match(value):
        return "Must be a valid email address"
    return None


_URL_RE = re.compile(r"^https?://[^\s/$.?#].\S*$", re.IGNORECASE)


def url(value: str) -> str | None:
    if not _URL_RE.match(value):
        return "Must be a valid URL"
    return None


_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def date(value: str) -> str | None:
    """``YYYY-MM-DD``."""
    if not _DATE_RE.match(value):
        return "Must be a date (YYYY-MM-DD)"
    return None


def one_of(*choices: str) -> Validator:
    allowed = frozenset(choices)

    def check(value: str) -> str | None:
        if value not in allowed:
            return f"Must be one of: {', '.join(sorted(allowed))}"
        return None

    return check


def integer(value: str) -> str | None:
    try:
        int(value)
    except (TypeError, ValueError):
        return "Must be a whole number"
    return None


def number(value: str) -> str | None:
    try:
        float(value)
    except (TypeError, ValueError):
        return "Must be a number"
    return None


def between(low: float, high: float) -> Validator:
    """Numeric value within ``[low, high]``."""

    def check(value: str) -> str | None:
        try:
            n = float(value)
        except (TypeError, ValueError):
            return "Must be a number"
        if not low <= n <= high:
            return f"Must be between {low:g} and {high:g}"
        return None

    return check
