"""Many-to-many through a pivot table."""
from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from mortar.relations.base import Relation, unique_keys

if TYPE_CHECKING:
    from mortar.connection.driver import Row
    from mortar.contracts import EntityLike, EntityType
    from mortar.database import Database
    from mortar.query.builder import Builder


def _as_list(ids: Any) -> list[Any]:
    if isinstance(ids, (list, tuple, set, frozenset)):
        return list(ids)
    return [ids]


class BelongsToMany(Relation):
    """``parent.parent_key = pivot.foreign_pivot_key`` and
    ``pivot.related_pivot_key = related.related_key``.

    Eager loading issues two queries per batch: pivot rows for all parent
    keys, then related rows for the distinct related keys found there.
    Per-parent lists are rebuilt by replaying the pivot rows in order.

    Args:
        database: Database the pivot and related rows are read from.
        parent: The owning instance.
        related: The related entity type.
        pivot_table: Pivot table name.
        foreign_pivot_key: Pivot column referencing the parent.
        related_pivot_key: Pivot column referencing the related row.
        parent_key: Parent column referenced by ``foreign_pivot_key``.
        related_key: Related column referenced by ``related_pivot_key``.
    """

    def __init__(
        self,
        database: Database,
        parent: EntityLike,
        related: type[EntityType],
        pivot_table: str,
        foreign_pivot_key: str,
        related_pivot_key: str,
        parent_key: str,
        related_key: str,
    ) -> None:
        super().__init__(database, parent, related)
        self.pivot_table = pivot_table
        self.foreign_pivot_key = foreign_pivot_key
        self.related_pivot_key = related_pivot_key
        self.parent_key = parent_key
        self.related_key = related_key

    def pivot_query(self) -> Builder:
        return self.database.table(self.pivot_table, connection=self.related.connection_name())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self) -> list[Any]:
        key = self.parent.get_attribute(self.parent_key)
        if key is None:
            return []
        results = await self._resolve([key])
        return results.get(key, [])

    async def eager_load_for_many(self, parents: list[EntityLike], name: str) -> None:
        results = await self._resolve(unique_keys(parents, self.parent_key))
        for parent in parents:
            parent.set_relation(name, list(results.get(parent.get_attribute(self.parent_key), [])))

    async def _resolve(self, parent_keys: list[Any]) -> dict[Any, list[Any]]:
        if not parent_keys:
            return {}
        pivot_rows: list[Row] = await self.pivot_query().where_in(
            self.foreign_pivot_key, parent_keys
        ).get()

        related_ids = list(
            dict.fromkeys(
                row[self.related_pivot_key]
                for row in pivot_rows
                if row.get(self.related_pivot_key) is not None
            )
        )
        if not related_ids:
            return {}

        by_key: dict[Any, Any] = {}
        for model in await self.related_query().where_in(self.related_key, related_ids).get():
            by_key.setdefault(model.get_attribute(self.related_key), model)

        results: dict[Any, list[Any]] = {}
        for row in pivot_rows:
            model = by_key.get(row.get(self.related_pivot_key))
            if model is not None:
                results.setdefault(row.get(self.foreign_pivot_key), []).append(model)
        return results

    # ------------------------------------------------------------------
    # Pivot writes
    # ------------------------------------------------------------------

    def _parent_key_value(self) -> Any:
        return self.parent.get_attribute(self.parent_key)

    async def attach(self, ids: Any, attributes: dict[str, Any] | None = None) -> None:
        """Insert one pivot row per id, with optional extra pivot columns."""
        parent_id = self._parent_key_value()
        for related_id in _as_list(ids):
            await self.pivot_query().insert(
                {
                    self.foreign_pivot_key: parent_id,
                    self.related_pivot_key: related_id,
                    **(attributes or {}),
                }
            )

    async def detach(self, ids: Any | Iterable[Any] | None = None) -> int:
        """Delete pivot rows of the parent; all of them when ``ids`` is ``None``.

        Returns:
            The number of pivot rows removed.
        """
        query = self.pivot_query().where(self.foreign_pivot_key, self._parent_key_value())
        if ids is not None:
            query.where_in(self.related_pivot_key, _as_list(ids))
        return await query.delete()

    async def sync(self, ids: Any) -> None:
        """Make ``ids`` the exact set of attached related keys."""
        async with self.database.transaction(self.related.connection_name()):
            await self.detach()
            await self.attach(ids)
