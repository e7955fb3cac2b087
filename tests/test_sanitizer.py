"""Unit tests for mortar.support.sanitizer."""

from __future__ import annotations

import pytest

from mortar.errors import (
    InvalidIdentifierError,
    InvalidLimitError,
    InvalidOffsetError,
    InvalidOperatorError,
    InvalidSortDirectionError,
    ValidationError,
)
from mortar.support.sanitizer import (
    MAX_LIMIT,
    MAX_OFFSET,
    is_safe,
    sanitize_column_name,
    sanitize_direction,
    sanitize_identifier,
    sanitize_identifiers,
    sanitize_operator,
    sanitize_table_name,
    validate_limit,
    validate_offset,
)


@pytest.mark.parametrize(
    "identifier",
    ["users", "user_posts", "_private", "Users2", "users.email", "users.*", "*"],
)
def test_valid_identifiers_round_trip(identifier):
    assert sanitize_identifier(identifier) == identifier


def test_surrounding_whitespace_is_trimmed():
    assert sanitize_identifier("  users  ") == "users"


@pytest.mark.parametrize(
    ("identifier", "code"),
    [
        ("users; DROP TABLE x", "INVALID_IDENTIFIER_PATTERN"),
        ("1abc", "INVALID_IDENTIFIER_PATTERN"),
        ("a-b", "INVALID_IDENTIFIER_PATTERN"),
        ('users"', "INVALID_IDENTIFIER_PATTERN"),
        ("users.e mail", "INVALID_IDENTIFIER_PATTERN"),
        ("*.email", "INVALID_IDENTIFIER_PATTERN"),
        ("a.b.c", "INVALID_QUALIFIED_NAME"),
        ("", "INVALID_IDENTIFIER"),
        ("   ", "INVALID_IDENTIFIER"),
        ("x" * 65, "IDENTIFIER_TOO_LONG"),
    ],
)
def test_unsafe_identifiers_are_rejected(identifier, code):
    with pytest.raises(InvalidIdentifierError) as exc_info:
        sanitize_identifier(identifier)
    assert exc_info.value.code == code
    assert isinstance(exc_info.value, ValidationError)


def test_sixty_four_characters_is_the_maximum():
    name = "x" * 64
    assert sanitize_identifier(name) == name


def test_error_details_name_the_context():
    with pytest.raises(InvalidIdentifierError) as exc_info:
        sanitize_table_name("bad-table")
    details = exc_info.value.details
    assert details["context"] == "table name"
    assert details["identifier"] == "bad-table"
    assert exc_info.value.to_error_response()["error"] == "INVALID_IDENTIFIER_PATTERN"


def test_column_and_list_helpers():
    assert sanitize_column_name("email") == "email"
    assert sanitize_identifiers(["id", "users.name"]) == ["id", "users.name"]
    with pytest.raises(InvalidIdentifierError):
        sanitize_identifiers(["id", "drop;"])


def test_is_safe():
    assert is_safe("users")
    assert not is_safe("users; --")
    assert not is_safe("")


@pytest.mark.parametrize(("raw", "expected"), [("asc", "ASC"), ("DESC", "DESC"), (" Desc ", "DESC")])
def test_direction_is_normalized(raw, expected):
    assert sanitize_direction(raw) == expected


@pytest.mark.parametrize("raw", ["up", "ASC; DROP", "", None])
def test_bad_direction_raises(raw):
    with pytest.raises(InvalidSortDirectionError) as exc_info:
        sanitize_direction(raw)
    assert exc_info.value.code == "INVALID_SORT_DIRECTION"


def test_limit_bounds():
    assert validate_limit(0) == 0
    assert validate_limit(MAX_LIMIT) == MAX_LIMIT
    for bad in (-1, MAX_LIMIT + 1, 1.5, "10", True, None):
        with pytest.raises(InvalidLimitError):
            validate_limit(bad)


def test_offset_bounds():
    assert validate_offset(25) == 25
    for bad in (-5, MAX_OFFSET + 1, "0", False):
        with pytest.raises(InvalidOffsetError) as exc_info:
            validate_offset(bad)
        assert exc_info.value.code == "INVALID_OFFSET"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("=", "="), (">=", ">="), ("like", "LIKE"), ("not   like", "NOT LIKE"), ("iLike", "ILIKE")],
)
def test_operator_is_normalized(raw, expected):
    assert sanitize_operator(raw) == expected


@pytest.mark.parametrize("raw", ["= 1 OR 1 =", ";", "IN", "==", ""])
def test_operator_outside_allowlist_raises(raw):
    with pytest.raises(InvalidOperatorError) as exc_info:
        sanitize_operator(raw)
    assert exc_info.value.code == "INVALID_OPERATOR"
