"""Fluent query builder.

A :class:`Builder` accumulates a :class:`~mortar.query.state.QueryState`
through chained calls and hands it to the connection's
:class:`~mortar.compile.compiler.QueryCompiler` when executed::

    adults = await (
        db.table("users")
        .where("age", ">", 18)
        .where_in("status", ["active", "pending"])
        .order_by("name")
        .limit(10)
        .get()
    )

Builders created from an entity type hydrate rows into entities and
eager load the relation paths given to :meth:`Builder.with_`::

    users = await User.query(db).with_("posts.comments").get()

Fluent calls mutate the builder and return it; use :meth:`Builder.clone`
to branch a query.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from mortar.compile.base import CompiledQuery
from mortar.errors import ModelNotFoundError, UnsafeRawQueryError, ValidationError
from mortar.query.clauses import (
    BasicWhere,
    BetweenWhere,
    Boolean,
    InWhere,
    JoinClause,
    JoinType,
    NullWhere,
    OrderByClause,
    RawWhere,
)
from mortar.query.state import QueryState
from mortar.relations.loader import RelationLoader

if TYPE_CHECKING:
    from mortar.compile.compiler import QueryCompiler
    from mortar.contracts import EntityType
    from mortar.database import Database

_MISSING: Any = object()

_NULL_OPERATORS = {"=": False, "IS": False, "!=": True, "<>": True, "IS NOT": True}


@dataclass
class Page:
    """One page of results from :meth:`Builder.paginate`.

    Attributes:
        items: Rows or entities on this page.
        total: Total matching rows across all pages.
        per_page: Page size.
        current_page: 1-based page number.
        last_page: Number of the last page (``1`` when empty).
    """

    items: list[Any] = field(default_factory=list)
    total: int = 0
    per_page: int = 15
    current_page: int = 1
    last_page: int = 1

    @property
    def has_more(self) -> bool:
        return self.current_page < self.last_page


class Builder:
    """Chainable query over one table.

    Args:
        database: The owning database.
        table: Table name; taken from ``entity`` when omitted.
        entity: Entity type to hydrate rows into.
        connection: Connection name; defaults to the entity's, then the
            database default.
    """

    def __init__(
        self,
        database: Database,
        table: str | None = None,
        entity: type[EntityType] | None = None,
        connection: str | None = None,
    ) -> None:
        if table is None and entity is None:
            raise ValueError("Builder needs a table name or an entity type.")
        self.database = database
        self.entity = entity
        self.connection = connection or (entity.connection_name() if entity else None)
        self.state = QueryState(table=table or entity.table_name())
        if entity is not None:
            self.state.soft_delete_column = entity.soft_delete_column()

    # ------------------------------------------------------------------
    # SELECT / FROM
    # ------------------------------------------------------------------

    def select(self, *columns: str) -> Builder:
        self.state.columns.extend(columns)
        return self

    def distinct(self, value: bool = True) -> Builder:
        self.state.distinct = value
        return self

    # ------------------------------------------------------------------
    # WHERE
    # ------------------------------------------------------------------

    def _add_where(
        self,
        column: str,
        operator: Any,
        value: Any,
        boolean: Boolean,
    ) -> Builder:
        if value is _MISSING:
            operator, value = "=", operator
        if value is None and isinstance(operator, str) and operator.upper() in _NULL_OPERATORS:
            negate = _NULL_OPERATORS[operator.upper()]
            self.state.wheres.append(NullWhere(column=column, boolean=boolean, not_=negate))
            return self
        self.state.wheres.append(
            BasicWhere(column=column, operator=operator, value=value, boolean=boolean)
        )
        return self

    def where(self, column: str, operator: Any = _MISSING, value: Any = _MISSING) -> Builder:
        """Add ``column operator value``; ``where(col, val)`` means ``=``.

        Comparing to ``None`` with ``=`` or ``!=`` becomes ``IS [NOT] NULL``.
        """
        return self._add_where(column, operator, value, "AND")

    def or_where(self, column: str, operator: Any = _MISSING, value: Any = _MISSING) -> Builder:
        return self._add_where(column, operator, value, "OR")

    def where_not(self, column: str, operator: Any = _MISSING, value: Any = _MISSING) -> Builder:
        """Add ``NOT column operator value``."""
        if value is _MISSING:
            operator, value = "=", operator
        self.state.wheres.append(
            BasicWhere(column=column, operator=operator, value=value, not_=True)
        )
        return self

    def where_in(self, column: str, values: Any, boolean: Boolean = "AND", not_: bool = False) -> Builder:
        self.state.wheres.append(
            InWhere(column=column, values=tuple(values), boolean=boolean, not_=not_)
        )
        return self

    def where_not_in(self, column: str, values: Any) -> Builder:
        return self.where_in(column, values, not_=True)

    def or_where_in(self, column: str, values: Any) -> Builder:
        return self.where_in(column, values, boolean="OR")

    def or_where_not_in(self, column: str, values: Any) -> Builder:
        return self.where_in(column, values, boolean="OR", not_=True)

    def where_null(self, column: str, boolean: Boolean = "AND", not_: bool = False) -> Builder:
        self.state.wheres.append(NullWhere(column=column, boolean=boolean, not_=not_))
        return self

    def where_not_null(self, column: str) -> Builder:
        return self.where_null(column, not_=True)

    def or_where_null(self, column: str) -> Builder:
        return self.where_null(column, boolean="OR")

    def or_where_not_null(self, column: str) -> Builder:
        return self.where_null(column, boolean="OR", not_=True)

    def where_between(
        self,
        column: str,
        values: Any,
        boolean: Boolean = "AND",
        not_: bool = False,
    ) -> Builder:
        """Add ``column [NOT] BETWEEN min AND max``.

        Raises:
            ValidationError: ``INVALID_BETWEEN_VALUES`` unless exactly two
                bounds are given.
        """
        bounds = tuple(values)
        if len(bounds) != 2:
            raise ValidationError(
                f"BETWEEN on '{column}' needs exactly two values, got {len(bounds)}.",
                code="INVALID_BETWEEN_VALUES",
                details={"column": column, "count": len(bounds)},
            )
        self.state.wheres.append(
            BetweenWhere(column=column, values=bounds, boolean=boolean, not_=not_)
        )
        return self

    def where_not_between(self, column: str, values: Any) -> Builder:
        return self.where_between(column, values, not_=True)

    def allow_unsafe_raw(self) -> Builder:
        """Permit :meth:`where_raw` on this builder."""
        self.state.allow_unsafe_raw = True
        return self

    def where_raw(self, sql: str, bindings: Any = (), boolean: Boolean = "AND") -> Builder:
        """Add a raw SQL fragment rendered verbatim.

        Raises:
            UnsafeRawQueryError: Unless :meth:`allow_unsafe_raw` was called.
        """
        if not self.state.allow_unsafe_raw:
            raise UnsafeRawQueryError(sql)
        self.state.wheres.append(RawWhere(sql=sql, values=tuple(bindings), boolean=boolean))
        return self

    def unsafe_where_raw(self, sql: str, bindings: Any = (), boolean: Boolean = "AND") -> Builder:
        """Opt in and add a raw fragment in one call."""
        return self.allow_unsafe_raw().where_raw(sql, bindings, boolean)

    # ------------------------------------------------------------------
    # JOIN
    # ------------------------------------------------------------------

    def join(
        self,
        table: str,
        first: str,
        operator: str = "=",
        second: str | None = None,
        type: JoinType = "INNER",  # noqa: A002
    ) -> Builder:
        """Add ``<type> JOIN table ON first operator second``.

        ``join(table, first, second)`` is read as an equality join.
        """
        if second is None:
            operator, second = "=", operator
        self.state.joins.append(
            JoinClause(type=type, table=table, first=first, operator=operator, second=second)
        )
        return self

    def left_join(self, table: str, first: str, operator: str = "=", second: str | None = None) -> Builder:
        return self.join(table, first, operator, second, type="LEFT")

    def right_join(self, table: str, first: str, operator: str = "=", second: str | None = None) -> Builder:
        return self.join(table, first, operator, second, type="RIGHT")

    def cross_join(self, table: str) -> Builder:
        self.state.joins.append(JoinClause(type="CROSS", table=table))
        return self

    # ------------------------------------------------------------------
    # ORDER / LIMIT / OFFSET
    # ------------------------------------------------------------------

    def order_by(self, column: str, direction: str = "ASC") -> Builder:
        self.state.orders.append(OrderByClause(column=column, direction=direction))
        return self

    def order_by_desc(self, column: str) -> Builder:
        return self.order_by(column, "DESC")

    def latest(self, column: str = "created_at") -> Builder:
        return self.order_by(column, "DESC")

    def oldest(self, column: str = "created_at") -> Builder:
        return self.order_by(column, "ASC")

    def limit(self, value: int) -> Builder:
        self.state.limit = value
        return self

    def take(self, value: int) -> Builder:
        return self.limit(value)

    def offset(self, value: int) -> Builder:
        self.state.offset = value
        return self

    def skip(self, value: int) -> Builder:
        return self.offset(value)

    def for_page(self, page: int, per_page: int = 15) -> Builder:
        return self.offset(max(page - 1, 0) * per_page).limit(per_page)

    # ------------------------------------------------------------------
    # Eager loading and soft deletes
    # ------------------------------------------------------------------

    def with_(self, *paths: str) -> Builder:
        """Eager load dotted relation paths after :meth:`get`."""
        self.state.eager_load.extend(paths)
        return self

    def with_trashed(self) -> Builder:
        self.state.include_trashed = True
        self.state.only_trashed = False
        return self

    def only_trashed(self) -> Builder:
        self.state.include_trashed = True
        self.state.only_trashed = True
        return self

    def without_trashed(self) -> Builder:
        self.state.include_trashed = False
        self.state.only_trashed = False
        return self

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    @property
    def compiler(self) -> QueryCompiler:
        return self.database.compiler(self.connection)

    def to_sql(self) -> CompiledQuery:
        """Compile the SELECT this builder would run."""
        return self.compiler.compile_select(self.state)

    def clone(self) -> Builder:
        """Return a builder with an independent copy of this state."""
        copy = Builder.__new__(Builder)
        copy.database = self.database
        copy.entity = self.entity
        copy.connection = self.connection
        copy.state = self.state.clone()
        return copy

    def __repr__(self) -> str:
        return f"<Builder table={self.state.table!r} connection={self.connection!r}>"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self) -> list[Any]:
        """Run the SELECT; return entities when built from one, else row dicts."""
        compiled = self.to_sql()
        result = await self.database.execute(compiled.sql, compiled.bindings, self.connection)
        if self.entity is None:
            return result.rows
        models = [self.entity.from_row(row, self.database) for row in result.rows]
        if models and self.state.eager_load:
            await RelationLoader().load(models, self.state.eager_load)
        return models

    async def first(self) -> Any:
        results = await self.clone().limit(1).get()
        return results[0] if results else None

    def _key_column(self) -> str:
        return self.entity.primary_key() if self.entity is not None else "id"

    async def find(self, key: Any, column: str | None = None) -> Any:
        return await self.clone().where(column or self._key_column(), key).first()

    async def find_or_fail(self, key: Any, column: str | None = None) -> Any:
        """Like :meth:`find` but never returns ``None``.

        Raises:
            ModelNotFoundError: If no row matches ``key``.
        """
        found = await self.find(key, column)
        if found is None:
            name = self.entity.__name__ if self.entity is not None else self.state.table
            raise ModelNotFoundError(name, key)
        return found

    async def _aggregate(self, function: str, column: str = "*") -> Any:
        compiled = self.compiler.compile_aggregate(self.state, function, column)
        result = await self.database.execute(compiled.sql, compiled.bindings, self.connection)
        if not result.rows:
            return None
        return result.rows[0].get("aggregate")

    async def count(self, column: str = "*") -> int:
        return int(await self._aggregate("COUNT", column) or 0)

    async def exists(self) -> bool:
        return await self.count() > 0

    async def doesnt_exist(self) -> bool:
        return not await self.exists()

    async def max(self, column: str) -> Any:
        return await self._aggregate("MAX", column)

    async def min(self, column: str) -> Any:
        return await self._aggregate("MIN", column)

    async def avg(self, column: str) -> Any:
        return await self._aggregate("AVG", column)

    async def sum(self, column: str) -> Any:
        return await self._aggregate("SUM", column) or 0

    async def paginate(self, per_page: int = 15, page: int = 1) -> Page:
        """Count matches, then fetch one page of them."""
        if per_page < 1 or page < 1:
            raise ValidationError(
                "paginate() needs per_page >= 1 and page >= 1.",
                code="INVALID_PAGE",
                details={"per_page": per_page, "page": page},
            )
        total = await self.count()
        items = await self.clone().for_page(page, per_page).get()
        return Page(
            items=items,
            total=total,
            per_page=per_page,
            current_page=page,
            last_page=max(math.ceil(total / per_page), 1),
        )

    async def pluck(self, column: str) -> list[Any]:
        rows = await self.clone().select(column).get_rows()
        name = column.rsplit(".", 1)[-1]
        return [row.get(name) for row in rows]

    async def get_rows(self) -> list[dict[str, Any]]:
        """Run the SELECT and return raw row dicts without hydration."""
        compiled = self.to_sql()
        result = await self.database.execute(compiled.sql, compiled.bindings, self.connection)
        return result.rows

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, values: dict[str, Any]) -> Any:
        """Insert one row and return the id the driver reports."""
        compiled = self.compiler.compile_insert(self.state.table, values)
        result = await self.database.execute(compiled.sql, compiled.bindings, self.connection)
        return result.insert_id

    async def update(self, values: dict[str, Any]) -> int:
        """Update rows matching this builder's WHERE clauses; return the count."""
        compiled = self.compiler.compile_update(self.state.table, values, self.state.wheres)
        result = await self.database.execute(compiled.sql, compiled.bindings, self.connection)
        return result.row_count

    async def delete(self) -> int:
        """Delete rows matching this builder's WHERE clauses; return the count."""
        compiled = self.compiler.compile_delete(self.state.table, self.state.wheres)
        result = await self.database.execute(compiled.sql, compiled.bindings, self.connection)
        return result.row_count
