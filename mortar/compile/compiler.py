"""Core query AST → SQL compilation logic.

``QueryCompiler`` is the top-level orchestrator.  For every statement it

1. sanitizes every identifier, operator, direction and LIMIT/OFFSET
   literal the AST references (raw WHERE fragments excepted);
2. adds the implicit soft-delete predicate when the policy asks for one;
3. looks the statement up in a bounded LRU cache keyed by the canonical
   serialization of the sanitized AST, the grammar identity and the
   soft-delete policy, returning a *copy* on a hit;
4. otherwise renders it through the clause builders and caches it.

All dialect-specific behaviour is delegated to the injected
:class:`~mortar.compile.base.Grammar`.

Sub-builder wiring
------------------
QueryCompiler
  ├── SelectClauseBuilder  (clause_builders.py)
  ├── JoinClauseBuilder    (clause_builders.py)
  ├── WhereClauseBuilder   (clause_builders.py)
  ├── OrderClauseBuilder   (clause_builders.py)
  └── SetClauseBuilder     (clause_builders.py)

A single :class:`~mortar.compile.context.BindingContext` is created per
statement and shared by every builder that emits placeholders.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from mortar.compile.base import CompiledQuery, Grammar
from mortar.compile.clause_builders import (
    JoinClauseBuilder,
    OrderClauseBuilder,
    SelectClauseBuilder,
    SetClauseBuilder,
    WhereClauseBuilder,
)
from mortar.compile.context import BindingContext, CompilationContext
from mortar.errors import CompilationError
from mortar.query.clauses import (
    BasicWhere,
    JoinClause,
    NullWhere,
    OrderByClause,
    RawWhere,
    WhereClause,
    to_where,
)
from mortar.query.state import QueryState, SoftDeletePolicy
from mortar.support.lru import LRUCache
from mortar.support.sanitizer import (
    sanitize_column_name,
    sanitize_direction,
    sanitize_identifier,
    sanitize_identifiers,
    sanitize_operator,
    sanitize_table_name,
    validate_limit,
    validate_offset,
)

logger = logging.getLogger(__name__)

#: Aggregate functions accepted by :meth:`QueryCompiler.compile_aggregate`.
AGGREGATE_FUNCTIONS: frozenset[str] = frozenset({"COUNT", "MAX", "MIN", "AVG", "SUM"})


def _json_default(value: Any) -> Any:
    # Tag non-JSON values with their type so equal reprs of different
    # types produce different cache keys.
    return {"__type__": type(value).__qualname__, "repr": repr(value)}


class QueryCompiler:
    """Compiles QueryState snapshots to parameterized SQL for one grammar.

    Args:
        grammar: Dialect-specific grammar.
        cache_size: Capacity of the compiled-query LRU cache.
        caching: When ``False`` every SELECT is rendered from scratch.
    """

    def __init__(self, grammar: Grammar, cache_size: int = 500, caching: bool = True) -> None:
        self._ctx = CompilationContext(grammar=grammar)
        self._cache: LRUCache[str, CompiledQuery] = LRUCache(cache_size)
        self.caching = caching

    @property
    def grammar(self) -> Grammar:
        return self._ctx.grammar

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compile_select(
        self,
        state: QueryState,
        soft_delete: SoftDeletePolicy | None = None,
    ) -> CompiledQuery:
        """Compile a SELECT statement.

        Args:
            state: The query AST snapshot; it is not modified.
            soft_delete: Soft-delete policy; defaults to the state's own.

        Returns:
            A :class:`CompiledQuery` the caller may freely mutate.

        Raises:
            ValidationError: (or subclass) for any unsafe identifier,
                operator, direction, LIMIT or OFFSET.
        """
        policy = self._sanitize_soft_delete(soft_delete or state.soft_delete)
        sanitized = self._sanitize_state(state)
        key = self._cache_key("select", sanitized, policy)
        return self._cached(key, lambda: self._render_select(sanitized, policy))

    def compile_aggregate(
        self,
        state: QueryState,
        function: str,
        column: str = "*",
        soft_delete: SoftDeletePolicy | None = None,
    ) -> CompiledQuery:
        """Compile ``SELECT FN(column) AS "aggregate"`` over the state's
        FROM / JOIN / WHERE clauses.  ORDER BY, LIMIT and OFFSET are ignored.

        On a DISTINCT state ``COUNT(*)`` counts the distinct rows of the
        selected columns and ``COUNT(column)`` becomes
        ``COUNT(DISTINCT column)``.

        Raises:
            CompilationError: If ``function`` is not an aggregate function.
        """
        fn = function.upper()
        if fn not in AGGREGATE_FUNCTIONS:
            raise CompilationError(
                f"Unsupported aggregate function: {function!r}.", clause="SELECT"
            )
        policy = self._sanitize_soft_delete(soft_delete or state.soft_delete)
        sanitized = self._sanitize_state(state)
        target = sanitize_identifier(column, "aggregate column")
        key = self._cache_key(f"aggregate:{fn}:{target}", sanitized, policy)
        return self._cached(
            key, lambda: self._render_aggregate(sanitized, policy, fn, target)
        )

    def compile_insert(self, table: str, values: dict[str, Any]) -> CompiledQuery:
        """Compile ``INSERT INTO "table" ("a", "b") VALUES (?, ?)``.

        Raises:
            CompilationError: If ``values`` is empty.
        """
        if not values:
            raise CompilationError("INSERT requires at least one column.", clause="INSERT")
        sanitize_table_name(table)
        columns = [sanitize_column_name(c) for c in values]
        bindings = BindingContext(self.grammar)
        quote = self._ctx.quote
        column_sql = ", ".join(quote(c) for c in columns)
        placeholders = ", ".join(bindings.add(v) for v in values.values())
        sql = f"INSERT INTO {quote(table)} ({column_sql}) VALUES ({placeholders})"
        return self._result(sql, bindings)

    def compile_update(
        self,
        table: str,
        values: dict[str, Any],
        wheres: list[WhereClause] | None = None,
    ) -> CompiledQuery:
        """Compile ``UPDATE "table" SET "col" = ?, … [WHERE …]``.

        Raises:
            CompilationError: If ``values`` is empty.
        """
        if not values:
            raise CompilationError("UPDATE requires at least one column.", clause="UPDATE")
        sanitize_table_name(table)
        for column in values:
            sanitize_column_name(column)
        safe_wheres = self._sanitize_wheres(wheres or [])
        bindings = BindingContext(self.grammar)
        parts = [
            f"UPDATE {self._ctx.quote(table)}",
            SetClauseBuilder(self._ctx, bindings).build(values),
        ]
        if safe_wheres:
            parts.append(WhereClauseBuilder(self._ctx, bindings).build(safe_wheres))
        return self._result(" ".join(parts), bindings)

    def compile_delete(
        self,
        table: str,
        wheres: list[WhereClause] | None = None,
    ) -> CompiledQuery:
        """Compile ``DELETE FROM "table" [WHERE …]``."""
        sanitize_table_name(table)
        safe_wheres = self._sanitize_wheres(wheres or [])
        bindings = BindingContext(self.grammar)
        parts = [f"DELETE FROM {self._ctx.quote(table)}"]
        if safe_wheres:
            parts.append(WhereClauseBuilder(self._ctx, bindings).build(safe_wheres))
        return self._result(" ".join(parts), bindings)

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_stats(self) -> dict[str, float | int]:
        """Return ``{hits, misses, hit_rate, size}`` of the compiled-query cache."""
        return self._cache.stats()

    def _cached(self, key: str, render: Callable[[], CompiledQuery]) -> CompiledQuery:
        if self.caching:
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug("Compiled-query cache hit (%s)", self.grammar.dialect_name)
                return cached.copy()
        compiled = render()
        if self.caching:
            logger.debug("Compiled-query cache miss (%s)", self.grammar.dialect_name)
            self._cache.set(key, compiled)
        return compiled.copy()

    def _cache_key(self, kind: str, state: QueryState, policy: SoftDeletePolicy) -> str:
        payload = {
            "kind": kind,
            "grammar": self.grammar.identity,
            "table": state.table,
            "columns": state.columns,
            "wheres": [w.model_dump() for w in state.wheres],
            "joins": [j.model_dump() for j in state.joins],
            "orders": [o.model_dump() for o in state.orders],
            "limit": state.limit,
            "offset": state.offset,
            "distinct": state.distinct,
            "soft_delete": {
                "column": policy.column,
                "include_trashed": policy.include_trashed,
                "only_trashed": policy.only_trashed,
            },
        }
        return json.dumps(payload, sort_keys=True, default=_json_default)

    # ------------------------------------------------------------------
    # Sanitization
    # ------------------------------------------------------------------

    def _sanitize_state(self, state: QueryState) -> QueryState:
        sanitized = state.clone()
        sanitized.table = sanitize_table_name(state.table)
        sanitized.columns = sanitize_identifiers(state.columns, "column name")
        sanitized.joins = [self._sanitize_join(j) for j in state.joins]
        sanitized.wheres = self._sanitize_wheres(state.wheres)
        sanitized.orders = [
            OrderByClause(
                column=sanitize_identifier(o.column, "order column"),
                direction=sanitize_direction(o.direction),
            )
            for o in state.orders
        ]
        if state.limit is not None:
            sanitized.limit = validate_limit(state.limit)
        if state.offset is not None:
            sanitized.offset = validate_offset(state.offset)
        return sanitized

    @staticmethod
    def _sanitize_join(join: JoinClause) -> JoinClause:
        update: dict[str, Any] = {
            "table": sanitize_table_name(join.table),
            "operator": sanitize_operator(join.operator),
        }
        if join.first is not None:
            update["first"] = sanitize_identifier(join.first, "join column")
        if join.second is not None:
            update["second"] = sanitize_identifier(join.second, "join column")
        return join.model_copy(update=update)

    @staticmethod
    def _sanitize_wheres(wheres: list[WhereClause | dict]) -> list[WhereClause]:
        sanitized: list[WhereClause] = []
        for raw in wheres:
            where = to_where(raw)
            if isinstance(where, RawWhere):
                sanitized.append(where)
                continue
            update: dict[str, Any] = {
                "column": sanitize_identifier(where.column, "where column"),
            }
            if isinstance(where, BasicWhere):
                update["operator"] = sanitize_operator(where.operator)
            sanitized.append(where.model_copy(update=update))
        return sanitized

    @staticmethod
    def _sanitize_soft_delete(policy: SoftDeletePolicy) -> SoftDeletePolicy:
        if policy.column is None:
            return policy
        return SoftDeletePolicy(
            column=sanitize_column_name(policy.column),
            include_trashed=policy.include_trashed,
            only_trashed=policy.only_trashed,
        )

    @staticmethod
    def _with_soft_delete(
        wheres: list[WhereClause], policy: SoftDeletePolicy
    ) -> list[WhereClause]:
        if policy.column is None:
            return wheres
        if policy.only_trashed:
            return [*wheres, NullWhere(column=policy.column, boolean="AND", not_=True)]
        if not policy.include_trashed:
            return [*wheres, NullWhere(column=policy.column, boolean="AND")]
        return wheres

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render_select(self, state: QueryState, policy: SoftDeletePolicy) -> CompiledQuery:
        bindings = BindingContext(self.grammar)
        parts = [SelectClauseBuilder(self._ctx).build(state.columns, state.distinct)]
        parts.extend(self._render_body(state, policy, bindings))

        if state.orders:
            parts.append(OrderClauseBuilder(self._ctx).build(state.orders))
        parts.extend(self.grammar.compile_limit_offset(state.limit, state.offset))

        return self._result(" ".join(parts), bindings)

    def _render_aggregate(
        self,
        state: QueryState,
        policy: SoftDeletePolicy,
        function: str,
        column: str,
    ) -> CompiledQuery:
        bindings = BindingContext(self.grammar)
        alias = self._ctx.quote("aggregate")
        if state.distinct and function == "COUNT" and column == "*":
            # Count the distinct rows the SELECT itself would return.
            inner = [SelectClauseBuilder(self._ctx).build(state.columns, True)]
            inner.extend(self._render_body(state, policy, bindings))
            sql = (
                f"SELECT COUNT(*) AS {alias} FROM ({' '.join(inner)}) "
                f"AS {self._ctx.quote('distinct_rows')}"
            )
            return self._result(sql, bindings)

        target = "*" if column == "*" else self._ctx.quote(column)
        if state.distinct and function == "COUNT":
            target = f"DISTINCT {target}"
        parts = [f"SELECT {function}({target}) AS {alias}"]
        parts.extend(self._render_body(state, policy, bindings))
        return self._result(" ".join(parts), bindings)

    def _render_body(
        self,
        state: QueryState,
        policy: SoftDeletePolicy,
        bindings: BindingContext,
    ) -> list[str]:
        """``FROM … [JOIN …] [WHERE …]`` shared by SELECT and aggregates."""
        parts = [f"FROM {self._ctx.quote(state.table)}"]
        join_builder = JoinClauseBuilder(self._ctx)
        parts.extend(join_builder.build(j) for j in state.joins)
        wheres = self._with_soft_delete(state.wheres, policy)
        if wheres:
            parts.append(WhereClauseBuilder(self._ctx, bindings).build(wheres))
        return parts

    def _result(self, sql: str, bindings: BindingContext) -> CompiledQuery:
        return CompiledQuery(
            sql=sql,
            bindings=bindings.bindings,
            dialect=self.grammar.dialect_name,
        )
