"""mortar query AST: clause models and the mutable QueryState."""
from mortar.query.clauses import (
    BasicWhere,
    BetweenWhere,
    InWhere,
    JoinClause,
    NullWhere,
    OrderByClause,
    RawWhere,
    WhereClause,
    to_where,
)
from mortar.query.state import QueryState, SoftDeletePolicy

__all__ = [
    "BasicWhere",
    "BetweenWhere",
    "InWhere",
    "JoinClause",
    "NullWhere",
    "OrderByClause",
    "QueryState",
    "RawWhere",
    "SoftDeletePolicy",
    "WhereClause",
    "to_where",
]
