"""mortar relation engine: relation kinds and the eager-load orchestrator."""
from mortar.relations.base import Relation
from mortar.relations.belongs_to import BelongsTo
from mortar.relations.belongs_to_many import BelongsToMany
from mortar.relations.has_many import HasMany
from mortar.relations.has_one import HasOne
from mortar.relations.loader import RelationLoader, build_tree, collect, flatten

__all__ = [
    "BelongsTo",
    "BelongsToMany",
    "HasMany",
    "HasOne",
    "Relation",
    "RelationLoader",
    "build_tree",
    "collect",
    "flatten",
]
