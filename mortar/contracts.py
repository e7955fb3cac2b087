"""Capability protocols the query and relation layers depend on.

The relation engine never imports :class:`~mortar.entity.Entity`; it only
needs an attribute bag with relation slots on instances, and a table
description plus row hydration on types.  Any class satisfying these
protocols can be eager loaded.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mortar.connection.driver import Row
    from mortar.database import Database
    from mortar.relations.base import Relation


@runtime_checkable
class EntityLike(Protocol):
    """An entity instance as seen by the relation engine."""

    def get_attribute(self, key: str) -> Any: ...

    def set_relation(self, name: str, value: Any) -> None: ...

    def get_relation(self, name: str) -> Any: ...

    def relation_loaded(self, name: str) -> bool: ...

    def resolve_relation(self, name: str) -> Relation: ...


class EntityType(Protocol):
    """An entity class as seen by the builder and the relation engine."""

    __name__: str

    @classmethod
    def table_name(cls) -> str: ...

    @classmethod
    def primary_key(cls) -> str: ...

    @classmethod
    def connection_name(cls) -> str | None: ...

    @classmethod
    def soft_delete_column(cls) -> str | None: ...

    @classmethod
    def from_row(cls, row: Row, database: Database | None = None) -> EntityLike: ...
