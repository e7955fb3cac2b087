"""mortar – database-agnostic query construction and execution.

Public API
----------
``Database``
    Context object owning named connections, their pools and one
    compiled-query cache per connection.

``Builder``
    Fluent query surface returned by ``Database.table()`` and
    ``Database.query(Entity)``.

``Entity`` / ``relation``
    Minimal entity base and the decorator that declares relations
    (``has_many``, ``has_one``, ``belongs_to``, ``belongs_to_many``) for
    eager loading with ``Builder.with_("posts.comments")``.

Re-exported types
-----------------
Configuration models, ``QueryCompiler``, ``CompiledQuery``, the grammars,
``ConnectionPool``, the ``Driver`` contract and all error classes.

Extensibility
-------------
New dialects and drivers are registered by name::

    from mortar.compile.registry import GrammarFactory

    @GrammarFactory.register("oracle")
    class OracleGrammar(Grammar):
        ...

Any ``ConnectionConfig`` with ``dialect="oracle"`` then compiles with it.
"""
from __future__ import annotations

from mortar.compile import (
    CompiledQuery,
    Grammar,
    GrammarFactory,
    MySQLGrammar,
    PostgresGrammar,
    QueryCompiler,
    SQLiteGrammar,
)
from mortar.config import ConnectionConfig, DatabaseConfig, PoolConfig
from mortar.connection import ConnectionManager, ConnectionPool, Driver, DriverFactory, QueryResult
from mortar.database import Database
from mortar.drivers import SQLAlchemyDriver
from mortar.entity import Entity, relation
from mortar.errors import (
    CompilationError,
    ConnectionError,
    InvalidIdentifierError,
    InvalidLimitError,
    InvalidOffsetError,
    InvalidOperatorError,
    InvalidSortDirectionError,
    ModelNotFoundError,
    MortarError,
    PoolDrainedError,
    PoolTimeoutError,
    RelationError,
    RelationNotFoundError,
    UnsafeRawQueryError,
    ValidationError,
)
from mortar.query.builder import Builder, Page
from mortar.query.state import QueryState, SoftDeletePolicy
from mortar.relations import BelongsTo, BelongsToMany, HasMany, HasOne, Relation, RelationLoader
from mortar.testing import MockDriver

__all__ = [
    # Entry points
    "Database",
    "Builder",
    "Page",
    "Entity",
    "relation",
    # Configuration
    "ConnectionConfig",
    "DatabaseConfig",
    "PoolConfig",
    # Compilation
    "CompiledQuery",
    "Grammar",
    "GrammarFactory",
    "MySQLGrammar",
    "PostgresGrammar",
    "QueryCompiler",
    "QueryState",
    "SQLiteGrammar",
    "SoftDeletePolicy",
    # Connections
    "ConnectionManager",
    "ConnectionPool",
    "Driver",
    "DriverFactory",
    "MockDriver",
    "QueryResult",
    "SQLAlchemyDriver",
    # Relations
    "BelongsTo",
    "BelongsToMany",
    "HasMany",
    "HasOne",
    "Relation",
    "RelationLoader",
    # Errors
    "CompilationError",
    "ConnectionError",
    "InvalidIdentifierError",
    "InvalidLimitError",
    "InvalidOffsetError",
    "InvalidOperatorError",
    "InvalidSortDirectionError",
    "ModelNotFoundError",
    "MortarError",
    "PoolDrainedError",
    "PoolTimeoutError",
    "RelationError",
    "RelationNotFoundError",
    "UnsafeRawQueryError",
    "ValidationError",
]

__version__ = "0.1.0"
