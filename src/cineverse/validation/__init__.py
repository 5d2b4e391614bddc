"""Input validation: composable rules, clean results.

Usage::

    from cineverse.validation import validate, required, max_length, email

    async def update_profile(self, request: Request) -> Response:
        data = validate(await request.input(), {
            "first_name": [required, max_length(100)],
            "email": [required, email],
            "bio": [max_length(500)],
        }).raise_for_errors()
"""

from collections.abc import Mapping
from typing import Any

from cineverse.validation.result import ValidationResult
from cineverse.validation.rules import (
    Validator,
    between,
    date,
    email,
    integer,
    max_length,
    min_length,
    number,
    one_of,
    required,
    url,
)

__all__ = [
    "ValidationResult",
    "Validator",
    "between",
    "date",
    "email",
    "integer",
    "max_length",
    "min_length",
    "number",
    "one_of",
    "required",
    "url",
    "validate",
]


def validate(data: Mapping[str, Any], rules: dict[str, list[Validator]]) -> ValidationResult:
    """Validate *data* against *rules*.

    Values are compared as stripped strings. A field without
    ``required`` may be absent or empty; its other rules then do not
    run and it is left out of ``data``.
    """
    errors: dict[str, list[str]] = {}
    cleaned: dict[str, str] = {}

    for field_name, validators in rules.items():
        raw = data.get(field_name)
        value = "" if raw is None else str(raw).strip()

        if not value and required not in validators:
            continue

        field_errors: list[str] = []
        for validator in validators:
            error = validator(value)
            if error is not None:
                field_errors.append(error)
                # nothing else is worth checking on an empty value
                if validator is required:
                    break

        if field_errors:
            errors[field_name] = field_errors
        else:
            cleaned[field_name] = value

    return ValidationResult(data=cleaned, errors=errors)
