"""Identifier sanitizer.

Values always travel as bound parameters, but identifiers (table names,
column names, sort directions, LIMIT/OFFSET literals and comparison
operators) cannot be parameterized in standard SQL and are concatenated
into the statement text.  Every such token passes through this module
first; it is the only injection defense for identifiers.

All functions are pure and raise a
:class:`~mortar.errors.ValidationError` subclass on bad input::

    sanitize_identifier("users")          # 'users'
    sanitize_identifier("users.email")    # 'users.email'
    sanitize_identifier("user-posts")     # InvalidIdentifierError
    sanitize_direction("desc")            # 'DESC'
"""
from __future__ import annotations

import re
from typing import Any, Literal

from mortar.errors import (
    InvalidIdentifierError,
    InvalidLimitError,
    InvalidOffsetError,
    InvalidOperatorError,
    InvalidSortDirectionError,
    ValidationError,
)

#: Letters, digits and underscore; no leading digit.
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

#: Longest identifier accepted (MySQL's limit, the strictest of the three).
MAX_IDENTIFIER_LENGTH = 64

#: Hard ceilings for the LIMIT / OFFSET literals.
MAX_LIMIT = 1_000_000
MAX_OFFSET = 1_000_000

#: Comparison operators that may be rendered between a column and a value.
ALLOWED_OPERATORS: tuple[str, ...] = (
    "=", "!=", "<>", "<", "<=", ">", ">=",
    "LIKE", "NOT LIKE", "ILIKE", "NOT ILIKE",
)

WILDCARD = "*"

SortDirection = Literal["ASC", "DESC"]


def sanitize_identifier(identifier: str, context: str = "identifier") -> str:
    """Validate a table or column name and return it normalized.

    Surrounding whitespace is trimmed.  Qualified names (``table.column``)
    are split, each segment validated independently, then rejoined.  The
    ``*`` wildcard is accepted as-is.

    Args:
        identifier: The raw identifier.
        context: What the identifier is used as, for error messages.

    Returns:
        The validated identifier.

    Raises:
        InvalidIdentifierError: If the identifier is empty, too long, has
            more than two segments, or contains illegal characters.
    """
    if not isinstance(identifier, str) or not identifier.strip():
        raise InvalidIdentifierError(
            f"Invalid {context}: cannot be empty.",
            identifier=identifier,
            context=context,
            code="INVALID_IDENTIFIER",
        )

    identifier = identifier.strip()

    if identifier == WILDCARD:
        return identifier

    if len(identifier) > MAX_IDENTIFIER_LENGTH:
        raise InvalidIdentifierError(
            f"Invalid {context}: exceeds maximum length of {MAX_IDENTIFIER_LENGTH} characters.",
            identifier=identifier,
            context=context,
            code="IDENTIFIER_TOO_LONG",
            max_length=MAX_IDENTIFIER_LENGTH,
        )

    if "." in identifier:
        parts = identifier.split(".")
        if len(parts) > 2:
            raise InvalidIdentifierError(
                f"Invalid {context}: too many parts in qualified name.",
                identifier=identifier,
                context=context,
                code="INVALID_QUALIFIED_NAME",
            )
        table, column = parts
        return ".".join(
            [
                _sanitize_segment(table, context, allow_wildcard=False),
                _sanitize_segment(column, context, allow_wildcard=True),
            ]
        )

    return _sanitize_segment(identifier, context, allow_wildcard=False)


def _sanitize_segment(segment: str, context: str, *, allow_wildcard: bool) -> str:
    if allow_wildcard and segment == WILDCARD:
        return segment
    if not IDENTIFIER_PATTERN.match(segment):
        raise InvalidIdentifierError(
            f"Invalid {context}: {segment!r} contains invalid characters. "
            "Only letters, digits and underscores are allowed, "
            "and the name must not start with a digit.",
            identifier=segment,
            context=context,
            code="INVALID_IDENTIFIER_PATTERN",
        )
    return segment


def sanitize_table_name(table: str) -> str:
    """Validate a table name."""
    return sanitize_identifier(table, "table name")


def sanitize_column_name(column: str) -> str:
    """Validate a column name."""
    return sanitize_identifier(column, "column name")


def sanitize_identifiers(identifiers: list[str], context: str = "identifier") -> list[str]:
    """Validate every identifier in ``identifiers``."""
    return [sanitize_identifier(i, context) for i in identifiers]


def is_safe(identifier: str) -> bool:
    """Return ``True`` if ``identifier`` would pass :func:`sanitize_identifier`."""
    try:
        sanitize_identifier(identifier)
    except ValidationError:
        return False
    return True


def sanitize_direction(direction: str) -> SortDirection:
    """Normalize an ORDER BY direction to ``'ASC'`` or ``'DESC'``.

    Raises:
        InvalidSortDirectionError: For anything but case-insensitive asc/desc.
    """
    normalized = direction.strip().upper() if isinstance(direction, str) else None
    if normalized not in ("ASC", "DESC"):
        raise InvalidSortDirectionError(direction)
    return normalized  # type: ignore[return-value]


def _is_int(value: Any) -> bool:
    # bool is an int subclass; LIMIT True is a caller bug.
    return isinstance(value, int) and not isinstance(value, bool)


def validate_limit(limit: Any) -> int:
    """Return ``limit`` if it is an integer in ``[0, MAX_LIMIT]``.

    Raises:
        InvalidLimitError: Otherwise.
    """
    if not _is_int(limit) or limit < 0 or limit > MAX_LIMIT:
        raise InvalidLimitError(limit, MAX_LIMIT)
    return limit


def validate_offset(offset: Any) -> int:
    """Return ``offset`` if it is an integer in ``[0, MAX_OFFSET]``.

    Raises:
        InvalidOffsetError: Otherwise.
    """
    if not _is_int(offset) or offset < 0 or offset > MAX_OFFSET:
        raise InvalidOffsetError(offset, MAX_OFFSET)
    return offset


def sanitize_operator(operator: str) -> str:
    """Normalize a comparison operator and check it against the allowlist.

    Raises:
        InvalidOperatorError: If the operator is not allowed.
    """
    normalized = " ".join(operator.upper().split()) if isinstance(operator, str) else None
    if normalized not in ALLOWED_OPERATORS:
        raise InvalidOperatorError(operator, list(ALLOWED_OPERATORS))
    return normalized
