"""Minimal Active-Record style entity base.

:class:`Entity` implements the capability interface the relation engine
consumes (an attribute bag plus relation slots) and declares relations
through the :func:`relation` decorator::

    class User(Entity):
        __table__ = "users"

        @relation
        def posts(self) -> HasMany:
            return self.has_many(Post)

    users = await User.query(db).with_("posts").get()
    users[0].get_relation("posts")

Relation names are collected once per class in ``__init_subclass__``;
nothing is discovered by inspecting method names at load time.
"""
from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from mortar.errors import RelationError, RelationNotFoundError
from mortar.relations.belongs_to import BelongsTo
from mortar.relations.belongs_to_many import BelongsToMany
from mortar.relations.has_many import HasMany
from mortar.relations.has_one import HasOne
from mortar.support.naming import default_foreign_key, default_table_name, pivot_table_name

if TYPE_CHECKING:
    from mortar.connection.driver import Row
    from mortar.database import Database
    from mortar.query.builder import Builder
    from mortar.relations.base import Relation

E = TypeVar("E", bound="Entity")
F = TypeVar("F", bound=Callable[..., Any])

_RELATION_MARKER = "__mortar_relation__"


def relation(method: F) -> F:
    """Mark an entity method as a relation factory."""
    setattr(method, _RELATION_MARKER, True)
    return method


class Entity:
    """Base class for mapped entities.

    Class attributes:
        __table__: Table name; defaults to the pluralized snake_case class name.
        __primary_key__: Primary key column.
        __connection__: Connection name; ``None`` uses the database default.
        __soft_deletes__: Filter rows whose deleted-at column is set.
        __deleted_at_column__: The soft-delete column.
    """

    __table__: ClassVar[str | None] = None
    __primary_key__: ClassVar[str] = "id"
    __connection__: ClassVar[str | None] = None
    __soft_deletes__: ClassVar[bool] = False
    __deleted_at_column__: ClassVar[str] = "deleted_at"
    __relations__: ClassVar[frozenset[str]] = frozenset()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        names: set[str] = set()
        for klass in reversed(cls.__mro__):
            for name, member in vars(klass).items():
                if getattr(member, _RELATION_MARKER, False):
                    names.add(name)
                elif name in names:
                    names.discard(name)  # overridden by a plain attribute
        cls.__relations__ = frozenset(names)

    def __init__(
        self,
        attributes: dict[str, Any] | None = None,
        database: Database | None = None,
        **values: Any,
    ) -> None:
        self._attributes: dict[str, Any] = {**(attributes or {}), **values}
        self._relations: dict[str, Any] = {}
        self._database = database

    # ------------------------------------------------------------------
    # Type description
    # ------------------------------------------------------------------

    @classmethod
    def table_name(cls) -> str:
        return cls.__table__ or default_table_name(cls.__name__)

    @classmethod
    def primary_key(cls) -> str:
        return cls.__primary_key__

    @classmethod
    def connection_name(cls) -> str | None:
        return cls.__connection__

    @classmethod
    def soft_delete_column(cls) -> str | None:
        return cls.__deleted_at_column__ if cls.__soft_deletes__ else None

    @classmethod
    def from_row(cls: type[E], row: Row, database: Database | None = None) -> E:
        """Hydrate an instance from a driver row."""
        return cls(dict(row), database=database)

    @classmethod
    def query(cls: type[E], database: Database) -> Builder:
        """Start a builder over this entity's table."""
        return database.query(cls)

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._attributes[name]
        except KeyError:
            raise AttributeError(
                f"'{type(self).__name__}' has no attribute or column '{name}'"
            ) from None

    def get_attribute(self, key: str) -> Any:
        return self._attributes.get(key)

    def set_attribute(self, key: str, value: Any) -> None:
        self._attributes[key] = value

    @property
    def attributes(self) -> dict[str, Any]:
        return dict(self._attributes)

    def get_key(self) -> Any:
        return self._attributes.get(self.primary_key())

    def to_dict(self) -> dict[str, Any]:
        """Attributes plus loaded relations, recursively converted."""
        data = dict(self._attributes)
        for name, value in self._relations.items():
            if isinstance(value, list):
                data[name] = [item.to_dict() for item in value]
            elif isinstance(value, Entity):
                data[name] = value.to_dict()
            else:
                data[name] = value
        return data

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._attributes!r}>"

    # ------------------------------------------------------------------
    # Relation slots
    # ------------------------------------------------------------------

    def get_relation(self, name: str) -> Any:
        return self._relations.get(name)

    def set_relation(self, name: str, value: Any) -> None:
        self._relations[name] = value

    def relation_loaded(self, name: str) -> bool:
        return name in self._relations

    @property
    def relations(self) -> dict[str, Any]:
        return dict(self._relations)

    def resolve_relation(self, name: str) -> Relation:
        """Return the relation object declared under ``name``.

        Raises:
            RelationNotFoundError: If ``name`` is not a declared relation.
        """
        if name not in type(self).__relations__:
            raise RelationNotFoundError(
                type(self).__name__, name, sorted(type(self).__relations__)
            )
        return getattr(self, name)()

    @property
    def database(self) -> Database:
        if self._database is None:
            raise RelationError(
                f"{type(self).__name__} is not bound to a Database.",
                code="ENTITY_UNBOUND",
                details={"model": type(self).__name__},
            )
        return self._database

    def bind(self: E, database: Database) -> E:
        self._database = database
        return self

    # ------------------------------------------------------------------
    # Relation factories
    # ------------------------------------------------------------------

    def has_many(
        self,
        related: type[Entity],
        foreign_key: str | None = None,
        local_key: str | None = None,
    ) -> HasMany:
        return HasMany(
            self.database,
            self,
            related,
            foreign_key or default_foreign_key(type(self).__name__),
            local_key or self.primary_key(),
        )

    def has_one(
        self,
        related: type[Entity],
        foreign_key: str | None = None,
        local_key: str | None = None,
    ) -> HasOne:
        return HasOne(
            self.database,
            self,
            related,
            foreign_key or default_foreign_key(type(self).__name__),
            local_key or self.primary_key(),
        )

    def belongs_to(
        self,
        related: type[Entity],
        foreign_key: str | None = None,
        owner_key: str | None = None,
    ) -> BelongsTo:
        return BelongsTo(
            self.database,
            self,
            related,
            foreign_key or default_foreign_key(related.__name__),
            owner_key or related.primary_key(),
        )

    def belongs_to_many(
        self,
        related: type[Entity],
        pivot_table: str | None = None,
        foreign_pivot_key: str | None = None,
        related_pivot_key: str | None = None,
        parent_key: str | None = None,
        related_key: str | None = None,
    ) -> BelongsToMany:
        return BelongsToMany(
            self.database,
            self,
            related,
            pivot_table or pivot_table_name(self.table_name(), related.table_name()),
            foreign_pivot_key or default_foreign_key(type(self).__name__),
            related_pivot_key or default_foreign_key(related.__name__),
            parent_key or self.primary_key(),
            related_key or related.primary_key(),
        )
