"""Driver contract consumed by the execution layer.

A driver executes compiled SQL against a physical store.  mortar never
inspects or wraps driver exceptions: timeouts, constraint violations and
the like propagate to the caller unmodified.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

Row = dict[str, Any]


@dataclass
class QueryResult:
    """The outcome of one executed statement.

    Attributes:
        rows: Result rows as column-name → value dicts (empty for DML).
        row_count: Rows affected by DML, or rows returned by a SELECT.
        insert_id: Last inserted row id when the store reports one.
    """

    rows: list[Row] = field(default_factory=list)
    row_count: int = 0
    insert_id: Any = None


class Driver(ABC):
    """Abstract base for physical database drivers.

    Args:
        url: Driver-specific connection URL.
        **options: Extra driver options from the connection config.
    """

    def __init__(self, url: str | None = None, **options: Any) -> None:
        self.url = url
        self.options = options

    @property
    @abstractmethod
    def driver_name(self) -> str:
        """Return the registered driver name."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the underlying connection."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the underlying connection."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Return ``True`` while the connection is open."""

    @abstractmethod
    async def execute(self, sql: str, bindings: list[Any] | None = None) -> QueryResult:
        """Execute ``sql`` with positional ``bindings``."""

    @abstractmethod
    async def begin_transaction(self) -> None:
        """Start a transaction on this connection."""

    @abstractmethod
    async def commit(self) -> None:
        """Commit the current transaction."""

    @abstractmethod
    async def rollback(self) -> None:
        """Roll back the current transaction."""

    @abstractmethod
    def in_transaction(self) -> bool:
        """Return ``True`` while a transaction is open."""
