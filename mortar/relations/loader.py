"""Eager loading of dotted relation paths.

``["posts.comments.author", "profile"]`` becomes the tree::

    {"posts": {"comments": {"author": {}}}, "profile": {}}

Each top-level name is resolved for the whole parent batch at once; the
related entities it produced are then collected and loaded with the
flattened suffix paths.  A parent level is always fully resolved before
any nested level is started, so the number of queries depends on the
depth of the tree, not on the number of entities.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from mortar.contracts import EntityLike

#: Nested mapping of relation name to its child tree.
RelationTree = dict[str, Any]

logger = logging.getLogger(__name__)


def build_tree(paths: Iterable[str]) -> RelationTree:
    """Merge dotted paths into a nested dict; shared prefixes are merged."""
    tree: RelationTree = {}
    for path in paths:
        node = tree
        for segment in path.split("."):
            segment = segment.strip()
            if not segment:
                continue
            node = node.setdefault(segment, {})
    return tree


def flatten(tree: RelationTree, prefix: str = "") -> list[str]:
    """Return the leaf paths of ``tree`` as dotted strings."""
    paths: list[str] = []
    for name, children in tree.items():
        path = f"{prefix}{name}"
        if children:
            paths.extend(flatten(children, f"{path}."))
        else:
            paths.append(path)
    return paths


def collect(entities: Iterable[EntityLike], name: str) -> list[EntityLike]:
    """Gather the entities assigned under ``name`` across ``entities``.

    Lists are flattened, ``None`` and non-entity values are skipped.
    """
    related: list[EntityLike] = []
    for entity in entities:
        value: Any = entity.get_relation(name)
        items = value if isinstance(value, list) else [value]
        related.extend(item for item in items if isinstance(item, EntityLike))
    return related


class RelationLoader:
    """Orchestrates eager loading for a batch of entities."""

    async def load(self, entities: list[EntityLike], paths: Iterable[str]) -> None:
        """Resolve ``paths`` on ``entities`` and assign the results in place.

        Raises:
            RelationNotFoundError: If a path names an undeclared relation.
        """
        if not entities:
            return
        tree = build_tree(paths)
        for name, children in tree.items():
            relation = entities[0].resolve_relation(name)
            logger.debug(
                "Eager loading '%s' for %d parent(s) via %s",
                name,
                len(entities),
                type(relation).__name__,
            )
            await relation.eager_load_for_many(entities, name)

            if children:
                related = collect(entities, name)
                if related:
                    await self.load(related, flatten(children))
