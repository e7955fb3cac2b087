"""One-to-many: the related table carries the foreign key."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mortar.relations.base import Relation, unique_keys

if TYPE_CHECKING:
    from mortar.contracts import EntityLike, EntityType
    from mortar.database import Database


class HasMany(Relation):
    """``parent.local_key = related.foreign_key``, many related rows per parent.

    Args:
        database: Database the related rows are read from.
        parent: The owning instance.
        related: The related entity type.
        foreign_key: Column on the related table pointing at the parent.
        local_key: Parent column referenced by ``foreign_key``.
    """

    def __init__(
        self,
        database: Database,
        parent: EntityLike,
        related: type[EntityType],
        foreign_key: str,
        local_key: str,
    ) -> None:
        super().__init__(database, parent, related)
        self.foreign_key = foreign_key
        self.local_key = local_key

    async def get(self) -> list[Any]:
        key = self.parent.get_attribute(self.local_key)
        if key is None:
            return []
        return await self.related_query().where(self.foreign_key, key).get()

    async def _grouped(self, parents: list[EntityLike]) -> dict[Any, list[Any]]:
        keys = unique_keys(parents, self.local_key)
        if not keys:
            return {}
        groups: dict[Any, list[Any]] = {}
        for row in await self.related_query().where_in(self.foreign_key, keys).get():
            groups.setdefault(row.get_attribute(self.foreign_key), []).append(row)
        return groups

    async def eager_load_for_many(self, parents: list[EntityLike], name: str) -> None:
        groups = await self._grouped(parents)
        for parent in parents:
            parent.set_relation(name, list(groups.get(parent.get_attribute(self.local_key), [])))
