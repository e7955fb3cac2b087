"""Mutable query state (the AST snapshot) held by a Builder."""
from __future__ import annotations

from dataclasses import dataclass, field

from mortar.query.clauses import JoinClause, OrderByClause, WhereClause


@dataclass(frozen=True)
class SoftDeletePolicy:
    """How the soft-delete column constrains a SELECT.

    Attributes:
        column: The soft-delete timestamp column, or ``None`` when the
            entity does not soft delete.
        include_trashed: Return rows regardless of the column (``with_trashed``).
        only_trashed: Return only rows whose column is set (``only_trashed``).
    """

    column: str | None = None
    include_trashed: bool = False
    only_trashed: bool = False


@dataclass
class QueryState:
    """Everything a Builder has accumulated for one query.

    Created per builder, mutated by the fluent calls, and read (never
    written) by the compiler.  :meth:`clone` returns an independent copy.

    Attributes:
        table: Target table name.
        columns: Selected columns; empty means ``*``.
        wheres: WHERE clauses in call order.
        joins: JOIN clauses in call order.
        orders: ORDER BY clauses in call order.
        limit: LIMIT value, if any.
        offset: OFFSET value, if any.
        distinct: Emit ``SELECT DISTINCT``.
        eager_load: Dotted relation paths to eager load after ``get()``.
        soft_delete_column: Soft-delete column of the entity type, if any.
        include_trashed: ``with_trashed()`` was called.
        only_trashed: ``only_trashed()`` was called.
        allow_unsafe_raw: Raw WHERE fragments are permitted.
    """

    table: str
    columns: list[str] = field(default_factory=list)
    wheres: list[WhereClause] = field(default_factory=list)
    joins: list[JoinClause] = field(default_factory=list)
    orders: list[OrderByClause] = field(default_factory=list)
    limit: int | None = None
    offset: int | None = None
    distinct: bool = False
    eager_load: list[str] = field(default_factory=list)
    soft_delete_column: str | None = None
    include_trashed: bool = False
    only_trashed: bool = False
    allow_unsafe_raw: bool = False

    def clone(self) -> QueryState:
        """Return a copy whose lists are independent of this state's lists."""
        return QueryState(
            table=self.table,
            columns=list(self.columns),
            wheres=list(self.wheres),
            joins=list(self.joins),
            orders=list(self.orders),
            limit=self.limit,
            offset=self.offset,
            distinct=self.distinct,
            eager_load=list(self.eager_load),
            soft_delete_column=self.soft_delete_column,
            include_trashed=self.include_trashed,
            only_trashed=self.only_trashed,
            allow_unsafe_raw=self.allow_unsafe_raw,
        )

    @property
    def soft_delete(self) -> SoftDeletePolicy:
        """The soft-delete policy this state compiles with."""
        return SoftDeletePolicy(
            column=self.soft_delete_column,
            include_trashed=self.include_trashed,
            only_trashed=self.only_trashed,
        )
