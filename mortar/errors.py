"""Custom exception hierarchy for mortar.

All public errors inherit from MortarError so callers can catch the base
class for any mortar-specific failure.  Every error carries a
machine-readable ``code`` and a ``details`` dict; the message is for humans
and must not be used for control flow.
"""
from __future__ import annotations

from typing import Any


class MortarError(Exception):
    """Base exception for all mortar errors.

    Args:
        message: Human-readable description.
        code: Machine-readable error code.
        details: Structured context (identifier, limits, relation name, ...).
    """

    default_code = "MORTAR_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.details: dict[str, Any] = details or {}

    def to_error_response(self) -> dict[str, Any]:
        """Returns a structured error response suitable for logging or APIs."""
        return {
            "error": self.code,
            "message": str(self),
            "details": self.details,
        }


# ---------------------------------------------------------------------------
# Validation errors (caller defects, raised before any SQL is emitted)
# ---------------------------------------------------------------------------


class ValidationError(MortarError):
    """Raised when user-supplied query input fails validation."""

    default_code = "VALIDATION_ERROR"


class InvalidIdentifierError(ValidationError):
    """Raised when a table or column name is not a safe SQL identifier.

    ``code`` is one of ``INVALID_IDENTIFIER``, ``IDENTIFIER_TOO_LONG``,
    ``INVALID_IDENTIFIER_PATTERN`` or ``INVALID_QUALIFIED_NAME``.
    """

    default_code = "INVALID_IDENTIFIER"

    def __init__(
        self,
        message: str,
        identifier: str,
        context: str,
        code: str | None = None,
        **extra: Any,
    ) -> None:
        super().__init__(
            message,
            code=code,
            details={"identifier": identifier, "context": context, **extra},
        )
        self.identifier = identifier


class InvalidSortDirectionError(ValidationError):
    """Raised when an ORDER BY direction is not ASC or DESC."""

    default_code = "INVALID_SORT_DIRECTION"

    def __init__(self, direction: Any) -> None:
        super().__init__(
            f"Invalid ORDER BY direction: {direction!r}. Must be ASC or DESC.",
            details={"direction": direction},
        )


class InvalidLimitError(ValidationError):
    """Raised when a LIMIT value is negative, non-integer or too large."""

    default_code = "INVALID_LIMIT"

    def __init__(self, limit: Any, maximum: int) -> None:
        super().__init__(
            f"Invalid LIMIT value: {limit!r}. Must be an integer between 0 and {maximum}.",
            details={"limit": limit, "max": maximum},
        )


class InvalidOffsetError(ValidationError):
    """Raised when an OFFSET value is negative, non-integer or too large."""

    default_code = "INVALID_OFFSET"

    def __init__(self, offset: Any, maximum: int) -> None:
        super().__init__(
            f"Invalid OFFSET value: {offset!r}. Must be an integer between 0 and {maximum}.",
            details={"offset": offset, "max": maximum},
        )


class InvalidOperatorError(ValidationError):
    """Raised when a comparison operator is not in the allowlist."""

    default_code = "INVALID_OPERATOR"

    def __init__(self, operator: Any, allowed: list[str]) -> None:
        super().__init__(
            f"Invalid comparison operator: {operator!r}.",
            details={"operator": operator, "allowed_operators": allowed},
        )


class UnsafeRawQueryError(ValidationError):
    """Raised when a raw clause is added without opting in first."""

    default_code = "UNSAFE_RAW_QUERY"

    def __init__(self, sql: str) -> None:
        super().__init__(
            "Raw where clauses are disabled. Call allow_unsafe_raw() to enable.",
            details={"sql": sql},
        )


# ---------------------------------------------------------------------------
# Connection errors
# ---------------------------------------------------------------------------


class ConnectionError(MortarError):  # noqa: A001
    """Raised for unknown connections, pools, dialects or drivers."""

    default_code = "CONNECTION_ERROR"


class PoolTimeoutError(ConnectionError):
    """Raised when ``acquire()`` waits longer than the configured timeout."""

    default_code = "POOL_TIMEOUT"

    def __init__(self, timeout: float, max_size: int) -> None:
        super().__init__(
            f"Timed out after {timeout}s waiting for a pooled connection.",
            details={"timeout": timeout, "max": max_size},
        )


class PoolDrainedError(ConnectionError):
    """Raised on waiters still pending when the pool is drained."""

    default_code = "POOL_DRAINED"

    def __init__(self) -> None:
        super().__init__("Connection pool was drained while waiting for a connection.")


# ---------------------------------------------------------------------------
# Relation errors
# ---------------------------------------------------------------------------


class RelationError(MortarError):
    """Raised when a relation cannot be resolved."""

    default_code = "RELATION_ERROR"


class RelationNotFoundError(RelationError):
    """Raised when an eager-load path names a relation the type does not define."""

    default_code = "RELATION_NOT_FOUND"

    def __init__(self, model: str, relation: str, available: list[str] | None = None) -> None:
        super().__init__(
            f"Relation [{relation}] does not exist on model [{model}].",
            details={
                "model": model,
                "relation": relation,
                "available_relations": available or [],
            },
        )
        self.model = model
        self.relation = relation


# ---------------------------------------------------------------------------
# Lookup and compilation errors
# ---------------------------------------------------------------------------


class ModelNotFoundError(MortarError):
    """Raised by ``find_or_fail`` when no row matches the key."""

    default_code = "MODEL_NOT_FOUND"

    def __init__(self, model: str, key: Any = None) -> None:
        message = (
            f"Model [{model}] with id [{key}] not found."
            if key is not None
            else f"Model [{model}] not found."
        )
        super().__init__(message, details={"model": model, "id": key})
        self.model = model
        self.key = key


class CompilationError(MortarError):
    """Raised when SQL compilation fails for a malformed statement.

    Args:
        message: Human-readable description.
        clause: The clause being compiled when the error occurred.
    """

    default_code = "COMPILATION_ERROR"

    def __init__(self, message: str, clause: str | None = None) -> None:
        super().__init__(message, details={"clause": clause} if clause else {})
        self.clause = clause
