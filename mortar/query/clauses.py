"""Typed clause models for the query AST.

A WHERE clause is a tagged union discriminated on ``type``.  Pydantic v2
parses plain dicts into the correct model, so both of these produce the
same clause::

    BasicWhere(column="age", operator=">", value=18)
    to_where({"type": "basic", "column": "age", "operator": ">", "value": 18})

All clause models are frozen: the builder appends new clauses, it never
edits one in place, so a cloned :class:`~mortar.query.state.QueryState`
can share clause instances with its source.
"""
from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

_FROZEN = ConfigDict(extra="forbid", frozen=True)

Boolean = Literal["AND", "OR"]
JoinType = Literal["INNER", "LEFT", "RIGHT", "FULL", "CROSS"]


# ---------------------------------------------------------------------------
# WHERE clause variants
# ---------------------------------------------------------------------------


class BasicWhere(BaseModel):
    """``[NOT] "column" <operator> ?``."""

    model_config = _FROZEN

    type: Literal["basic"] = "basic"
    column: str
    operator: str = "="
    value: Any = None
    boolean: Boolean = "AND"
    not_: bool = False


class InWhere(BaseModel):
    """``"column" [NOT] IN (?, ?, ...)`` with one placeholder per value."""

    model_config = _FROZEN

    type: Literal["in"] = "in"
    column: str
    values: tuple[Any, ...] = ()
    boolean: Boolean = "AND"
    not_: bool = False


class NullWhere(BaseModel):
    """``"column" IS [NOT] NULL``."""

    model_config = _FROZEN

    type: Literal["null"] = "null"
    column: str
    boolean: Boolean = "AND"
    not_: bool = False


class BetweenWhere(BaseModel):
    """``"column" [NOT] BETWEEN ? AND ?``; bindings are ``(min, max)``."""

    model_config = _FROZEN

    type: Literal["between"] = "between"
    column: str
    values: tuple[Any, Any]
    boolean: Boolean = "AND"
    not_: bool = False


class RawWhere(BaseModel):
    """A literal SQL fragment rendered verbatim with caller-supplied bindings.

    Raw clauses bypass the identifier sanitizer; the builder only accepts
    them after an explicit ``allow_unsafe_raw()`` opt-in.
    """

    model_config = _FROZEN

    type: Literal["raw"] = "raw"
    sql: str
    values: tuple[Any, ...] = ()
    boolean: Boolean = "AND"


WhereClause = Annotated[
    BasicWhere | InWhere | NullWhere | BetweenWhere | RawWhere,
    Field(discriminator="type"),
]

#: Parse a raw dict into a typed WhereClause at any call site.
WHERE_ADAPTER: TypeAdapter[WhereClause] = TypeAdapter(WhereClause)

_WHERE_TYPES = (BasicWhere, InWhere, NullWhere, BetweenWhere, RawWhere)


def to_where(v: dict | WhereClause) -> WhereClause:
    """Convert a raw clause dict to a typed ``WhereClause``, or return as-is."""
    if isinstance(v, _WHERE_TYPES):
        return v
    return WHERE_ADAPTER.validate_python(v)


# ---------------------------------------------------------------------------
# JOIN / ORDER BY
# ---------------------------------------------------------------------------


class JoinClause(BaseModel):
    """``<type> JOIN "table" ON "first" <operator> "second"``.

    CROSS joins carry no ON condition; every other join type requires
    both ``first`` and ``second``.
    """

    model_config = _FROZEN

    type: JoinType = "INNER"
    table: str
    first: str | None = None
    operator: str = "="
    second: str | None = None

    @model_validator(mode="after")
    def _check_condition(self) -> JoinClause:
        if self.type != "CROSS" and (self.first is None or self.second is None):
            raise ValueError(f"{self.type} JOIN requires both 'first' and 'second' columns.")
        return self


class OrderByClause(BaseModel):
    """A single ORDER BY entry; ``direction`` is normalized at compile time."""

    model_config = _FROZEN

    column: str
    direction: str = "ASC"
