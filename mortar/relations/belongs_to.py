"""Inverse of HasMany/HasOne: the child carries the foreign key."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mortar.relations.base import Relation, unique_keys

if TYPE_CHECKING:
    from mortar.contracts import EntityLike, EntityType
    from mortar.database import Database


class BelongsTo(Relation):
    """``child.foreign_key = owner.owner_key``.

    Args:
        database: Database the owner rows are read from.
        parent: The child instance holding the foreign key.
        related: The owner entity type.
        foreign_key: Column on the child table.
        owner_key: Owner column referenced by ``foreign_key``.
    """

    def __init__(
        self,
        database: Database,
        parent: EntityLike,
        related: type[EntityType],
        foreign_key: str,
        owner_key: str,
    ) -> None:
        super().__init__(database, parent, related)
        self.foreign_key = foreign_key
        self.owner_key = owner_key

    async def get(self) -> Any:
        key = self.parent.get_attribute(self.foreign_key)
        if key is None:
            return None
        return await self.related_query().where(self.owner_key, key).first()

    async def eager_load_for_many(self, parents: list[EntityLike], name: str) -> None:
        keys = unique_keys(parents, self.foreign_key)
        owners: dict[Any, Any] = {}
        if keys:
            for row in await self.related_query().where_in(self.owner_key, keys).get():
                owners.setdefault(row.get_attribute(self.owner_key), row)
        for child in parents:
            child.set_relation(name, owners.get(child.get_attribute(self.foreign_key)))
