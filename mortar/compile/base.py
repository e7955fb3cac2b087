"""Compiler abstractions: CompiledQuery and the Grammar ABC.

The Template Method pattern (GoF) is used:
- ``Grammar`` defines the dialect hooks the clause builders call.
- ``SQLiteGrammar`` is the reference dialect; ``PostgresGrammar`` and
  ``MySQLGrammar`` override only placeholder emission, identifier quoting
  or the LIMIT literal used for offset-only queries, never the rendering
  algorithm.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from mortar.support.sanitizer import WILDCARD, sanitize_identifier


@dataclass
class CompiledQuery:
    """The output of a successful compilation.

    Attributes:
        sql: The compiled SQL string with positional placeholders.
        bindings: Values for the placeholders, in emission order.  The
            Nth placeholder in ``sql`` corresponds to ``bindings[N]``.
        dialect: The grammar's dialect name.
    """

    sql: str
    bindings: list[Any] = field(default_factory=list)
    dialect: str = "sqlite"

    def copy(self) -> CompiledQuery:
        """Return a copy with its own bindings list."""
        return CompiledQuery(sql=self.sql, bindings=list(self.bindings), dialect=self.dialect)


class Grammar(ABC):
    """Abstract base for dialect-specific SQL grammars.

    Subclasses implement the dialect-specific hooks; the
    :class:`~mortar.compile.compiler.QueryCompiler` and the clause
    builders use this interface via the Strategy / Template Method patterns.
    """

    #: LIMIT literal emitted when only an OFFSET is set (``None``: no LIMIT).
    unbounded_limit: ClassVar[str | None] = None

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the canonical dialect name (``'sqlite'``, ``'postgres'``, ...)."""

    @abstractmethod
    def placeholder(self, position: int) -> str:
        """Return the placeholder for the binding at ``position``.

        Args:
            position: 1-based index of the binding in emission order.

        Returns:
            Dialect-specific placeholder string.
        """

    @abstractmethod
    def quote_segment(self, segment: str) -> str:
        """Quote a single, already sanitized identifier segment."""

    @property
    def identity(self) -> str:
        """Grammar identity folded into compiled-query cache keys."""
        return f"{self.dialect_name}:{type(self).__qualname__}"

    def quote_identifier(self, name: str) -> str:
        """Sanitize and quote a table or column name.

        Qualified names are quoted per segment (``"users"."id"``); the
        ``*`` wildcard is never quoted.

        Raises:
            InvalidIdentifierError: If ``name`` is not a safe identifier.
        """
        sanitized = sanitize_identifier(name)
        return ".".join(
            part if part == WILDCARD else self.quote_segment(part)
            for part in sanitized.split(".")
        )

    def compile_limit_offset(self, limit: int | None, offset: int | None) -> list[str]:
        """Return the ``LIMIT`` / ``OFFSET`` fragments for validated values.

        Dialects that reject a bare ``OFFSET`` set :attr:`unbounded_limit`.
        """
        parts: list[str] = []
        if limit is not None:
            parts.append(f"LIMIT {limit}")
        elif offset is not None and self.unbounded_limit is not None:
            parts.append(f"LIMIT {self.unbounded_limit}")
        if offset is not None:
            parts.append(f"OFFSET {offset}")
        return parts
