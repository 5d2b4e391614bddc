"""Tests for cineverse.validation: rules and validate()."""

import pytest

from cineverse.errors import ValidationError
from cineverse.validation import (
    between,
    date,
    email,
    integer,
    max_length,
    one_of,
    required,
    url,
    validate,
)


class TestRules:
    def test_required(self) -> None:
        assert required("") is not None
        assert required("   ") is not None
        assert required("Dune") is None

    def test_max_length(self) -> None:
        assert max_length(4)("Dune") is None
        assert max_length(4)("Dunes") is not None

    def test_email(self) -> None:
        assert email("alice@example.com") is None
        assert email("alice@") is not None

    def test_url(self) -> None:
        assert url("https://youtube.com/watch?v=abc") is None
        assert url("ftp://example.com") is not None

    def test_date(self) -> None:
        assert date("2021-10-22") is None
        assert date("22/10/2021") is not None

    def test_one_of(self) -> None:
        check = one_of("male", "female", "other")
        assert check("other") is None
        assert "female, male, other" in check("unknown")

    def test_integer(self) -> None:
        assert integer("42") is None
        assert integer("4.2") is not None

    @pytest.mark.parametrize(
        ("value", "ok"),
        [("1", True), ("10", True), ("7.5", True), ("0", False), ("11", False), ("x", False)],
    )
    def test_between(self, value: str, ok: bool) -> None:
        assert (between(1, 10)(value) is None) is ok


class TestValidate:
    def test_cleaned_values_are_stripped(self) -> None:
        result = validate({"title": "  Dune  "}, {"title": [required]})
        assert result.is_valid
        assert result.data == {"title": "Dune"}

    def test_optional_empty_field_skipped(self) -> None:
        result = validate({"bio": ""}, {"bio": [max_length(5)]})
        assert result
        assert result.data == {}

    def test_required_stops_at_first_error(self) -> None:
        result = validate({}, {"email": [required, email]})
        assert result.errors == {"email": ["This field is required"]}

    def test_collects_every_field(self) -> None:
        result = validate({"email": "nope", "rating": "11"}, {"email": [email], "rating": [between(1, 10)]})
        assert not result
        assert set(result.errors) == {"email", "rating"}

    def test_raise_for_errors(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate({}, {"title": [required]}).raise_for_errors()
        assert exc_info.value.status == 422
        assert exc_info.value.errors == {"title": ["This field is required"]}
