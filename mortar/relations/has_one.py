"""One-to-one: the related table carries the foreign key."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mortar.relations.has_many import HasMany

if TYPE_CHECKING:
    from mortar.contracts import EntityLike


class HasOne(HasMany):
    """Like :class:`HasMany` but keeps one related row per parent.

    The kept row is the first in result order: driver order, or the order
    given with :meth:`order_by`.
    """

    async def get(self) -> Any:
        key = self.parent.get_attribute(self.local_key)
        if key is None:
            return None
        return await self.related_query().where(self.foreign_key, key).first()

    async def eager_load_for_many(self, parents: list[EntityLike], name: str) -> None:
        groups = await self._grouped(parents)
        for parent in parents:
            matches = groups.get(parent.get_attribute(self.local_key))
            parent.set_relation(name, matches[0] if matches else None)
