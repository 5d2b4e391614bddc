"""Validation result: cleaned data or field errors."""

from dataclasses import dataclass

from cineverse.errors import ValidationError


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Falsy when invalid, so ``if not result:`` reads naturally.

    ``errors`` maps field names to messages::

        {"title": ["This field is required"],
         "email": ["Must be a valid email address"]}
    """

    data: dict[str, str]
    errors: dict[str, list[str]]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.is_valid

    def raise_for_errors(self) -> dict[str, str]:
        """Cleaned data, or ``ValidationError`` (422) carrying every field error."""
        if self.errors:
            raise ValidationError(self.errors)
        return self.data
