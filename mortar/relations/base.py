"""Relation contract shared by every relation kind.

A relation is built per parent instance by an entity's relation factory.
It answers two questions:

``get()``
    The related value(s) of that one parent.
``eager_load_for_many(parents, name)``
    The related value(s) of a whole batch of parents in a fixed number of
    queries, written to each parent with ``set_relation(name, value)``.

Constraints added with :meth:`Relation.where` and :meth:`Relation.order_by`
apply to both paths.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from mortar.query.clauses import BasicWhere, OrderByClause

if TYPE_CHECKING:
    from mortar.contracts import EntityLike, EntityType
    from mortar.database import Database
    from mortar.query.builder import Builder

_MISSING: Any = object()


def unique_keys(entities: Iterable[EntityLike], attribute: str) -> list[Any]:
    """Distinct non-null values of ``attribute`` in first-seen order."""
    seen: dict[Any, None] = {}
    for entity in entities:
        value = entity.get_attribute(attribute)
        if value is not None:
            seen.setdefault(value, None)
    return list(seen)


class Relation(ABC):
    """Abstract base for relation descriptors.

    Args:
        database: Database the related rows are read from.
        parent: The instance the relation was declared on.
        related: The related entity type.
    """

    def __init__(self, database: Database, parent: EntityLike, related: type[EntityType]) -> None:
        self.database = database
        self.parent = parent
        self.related = related
        self._wheres: list[BasicWhere] = []
        self._orders: list[OrderByClause] = []

    def where(self, column: str, operator: Any = _MISSING, value: Any = _MISSING) -> Relation:
        """Constrain related rows with ``column operator value`` (``=`` when omitted)."""
        if value is _MISSING:
            operator, value = "=", operator
        self._wheres.append(BasicWhere(column=column, operator=operator, value=value))
        return self

    def order_by(self, column: str, direction: str = "ASC") -> Relation:
        self._orders.append(OrderByClause(column=column, direction=direction))
        return self

    def related_query(self) -> Builder:
        """A builder over the related table with this relation's constraints."""
        builder = self.database.query(self.related)
        for where in self._wheres:
            builder.where(where.column, where.operator, where.value)
        for order in self._orders:
            builder.order_by(order.column, order.direction)
        return builder

    @abstractmethod
    async def get(self) -> Any:
        """Return the related value(s) of :attr:`parent`."""

    @abstractmethod
    async def eager_load_for_many(self, parents: list[EntityLike], name: str) -> None:
        """Resolve the relation for every parent and assign it under ``name``."""
