"""Clause-level SQL builders.

Each class handles exactly one SQL clause.  Builders that emit
placeholders receive the run's shared
:class:`~mortar.compile.context.BindingContext`, so every binding is
appended at the moment its placeholder is rendered, left to right.

Classes
-------
SelectClauseBuilder   ``SELECT [DISTINCT] <columns>``
JoinClauseBuilder     ``<type> JOIN … ON …``
WhereClauseBuilder    ``WHERE … [AND|OR …]``
OrderClauseBuilder    ``ORDER BY …``
SetClauseBuilder      ``SET "col" = ?, …`` (UPDATE)
"""
from __future__ import annotations

from typing import Any

from mortar.compile.context import BindingContext, CompilationContext
from mortar.errors import CompilationError
from mortar.query.clauses import (
    BasicWhere,
    BetweenWhere,
    InWhere,
    JoinClause,
    NullWhere,
    OrderByClause,
    RawWhere,
    WhereClause,
)
from mortar.support.sanitizer import sanitize_direction


class SelectClauseBuilder:
    """Builds the ``SELECT [DISTINCT] …`` clause."""

    def __init__(self, ctx: CompilationContext) -> None:
        self._ctx = ctx

    def build(self, columns: list[str], distinct: bool = False) -> str:
        prefix = "SELECT DISTINCT" if distinct else "SELECT"
        if not columns:
            return f"{prefix} *"
        return f"{prefix} {', '.join(self._ctx.quote(c) for c in columns)}"


class JoinClauseBuilder:
    """Builds a single ``JOIN … ON …`` fragment."""

    def __init__(self, ctx: CompilationContext) -> None:
        self._ctx = ctx

    def build(self, join: JoinClause) -> str:
        quote = self._ctx.quote
        if join.type == "CROSS":
            return f"CROSS JOIN {quote(join.table)}"
        return (
            f"{join.type} JOIN {quote(join.table)} "
            f"ON {quote(join.first)} {join.operator} {quote(join.second)}"
        )


class WhereClauseBuilder:
    """Builds the ``WHERE`` chain.

    Rendering is sequential: the first clause is prefixed ``WHERE`` and
    every later clause by its own ``boolean``.  Bindings are appended to
    the shared ``BindingContext`` as each clause renders.
    """

    def __init__(self, ctx: CompilationContext, bindings: BindingContext) -> None:
        self._ctx = ctx
        self._bindings = bindings

    def build(self, wheres: list[WhereClause]) -> str:
        parts: list[str] = []
        for index, where in enumerate(wheres):
            prefix = "WHERE" if index == 0 else where.boolean
            parts.append(f"{prefix} {self._dispatch(where)}")
        return " ".join(parts)

    def _dispatch(self, where: WhereClause) -> str:
        if isinstance(where, BasicWhere):
            return self._basic(where)
        if isinstance(where, InWhere):
            return self._in(where)
        if isinstance(where, NullWhere):
            return self._null(where)
        if isinstance(where, BetweenWhere):
            return self._between(where)
        if isinstance(where, RawWhere):
            return self._raw(where)
        raise CompilationError(
            f"Unknown where clause type: {type(where).__name__}", clause="WHERE"
        )

    def _basic(self, where: BasicWhere) -> str:
        column = self._ctx.quote(where.column)
        placeholder = self._bindings.add(where.value)
        not_sql = "NOT " if where.not_ else ""
        return f"{not_sql}{column} {where.operator} {placeholder}"

    def _in(self, where: InWhere) -> str:
        column = self._ctx.quote(where.column)
        if not where.values:
            # IN () is not valid SQL: an empty IN matches nothing.
            return "1 = 1" if where.not_ else "0 = 1"
        placeholders = ", ".join(self._bindings.add(v) for v in where.values)
        not_sql = "NOT " if where.not_ else ""
        return f"{column} {not_sql}IN ({placeholders})"

    def _null(self, where: NullWhere) -> str:
        operator = "IS NOT NULL" if where.not_ else "IS NULL"
        return f"{self._ctx.quote(where.column)} {operator}"

    def _between(self, where: BetweenWhere) -> str:
        column = self._ctx.quote(where.column)
        low, high = where.values
        low_sql = self._bindings.add(low)
        high_sql = self._bindings.add(high)
        not_sql = "NOT " if where.not_ else ""
        return f"{column} {not_sql}BETWEEN {low_sql} AND {high_sql}"

    def _raw(self, where: RawWhere) -> str:
        self._bindings.extend_raw(where.values)
        return where.sql


class OrderClauseBuilder:
    """Builds the ``ORDER BY`` clause."""

    def __init__(self, ctx: CompilationContext) -> None:
        self._ctx = ctx

    def build(self, orders: list[OrderByClause]) -> str:
        parts = [
            f"{self._ctx.quote(o.column)} {sanitize_direction(o.direction)}" for o in orders
        ]
        return f"ORDER BY {', '.join(parts)}"


class SetClauseBuilder:
    """Builds the ``SET "col" = ?, …`` list of an UPDATE."""

    def __init__(self, ctx: CompilationContext, bindings: BindingContext) -> None:
        self._ctx = ctx
        self._bindings = bindings

    def build(self, values: dict[str, Any]) -> str:
        assignments = [
            f"{self._ctx.quote(column)} = {self._bindings.add(value)}"
            for column, value in values.items()
        ]
        return f"SET {', '.join(assignments)}"
