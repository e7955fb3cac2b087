"""The Database context object.

A :class:`Database` owns one :class:`~mortar.connection.manager.ConnectionManager`
and one :class:`~mortar.compile.compiler.QueryCompiler` per named connection.
Opening and closing it is explicit::

    async with Database(config) as db:
        users = await db.table("users").where("active", True).get()

        async with db.transaction():
            await db.table("accounts").where("id", 1).update({"balance": 0})

Statement routing
-----------------
1. Inside ``transaction()`` every statement for that connection runs on
   the connection pinned for the current task context.
2. Otherwise, if the connection has a pool, a pooled driver is acquired
   for the statement and released afterwards.
3. Otherwise the connection's primary driver is used.
"""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

import mortar.drivers  # noqa: F401  registers the "sqlalchemy" driver
import mortar.testing  # noqa: F401  registers the "mock" driver
from mortar.compile import GrammarFactory, QueryCompiler
from mortar.config import ConnectionConfig, DatabaseConfig
from mortar.connection.driver import Driver, QueryResult, Row
from mortar.connection.manager import ConnectionManager
from mortar.connection.pool import ConnectionPool
from mortar.errors import ConnectionError
from mortar.query.builder import Builder

if TYPE_CHECKING:
    from mortar.contracts import EntityType

logger = logging.getLogger(__name__)

# (id(database), connection name) -> driver pinned by an open transaction.
_pinned: ContextVar[Mapping[tuple[int, str], Driver]] = ContextVar(
    "mortar_pinned_connections", default={}
)


class Database:
    """Entry point for building and running queries.

    Args:
        config: Connection and compiler configuration.
        drivers: Pre-built primary drivers keyed by connection name, used
            instead of instantiating the configured driver (e.g. a
            :class:`~mortar.testing.MockDriver` in tests).
    """

    def __init__(
        self,
        config: DatabaseConfig | None = None,
        drivers: Mapping[str, Driver] | None = None,
    ) -> None:
        self.config = config or DatabaseConfig()
        self._drivers = dict(drivers or {})
        self._manager = ConnectionManager(default=self.config.default)
        self._compilers: dict[str, QueryCompiler] = {}
        self._connected = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> Database:
        """Register and open every configured connection."""
        if self._connected:
            return self
        for name, connection in self.config.connections.items():
            await self.add_connection(name, connection, self._drivers.get(name))
        if self.config.connections:
            self._manager.set_default(self.config.default)
        self._connected = True
        return self

    async def add_connection(
        self,
        name: str,
        config: ConnectionConfig,
        driver: Driver | None = None,
    ) -> Driver:
        """Register, open and return the primary driver of a new connection.

        Raises:
            ConnectionError: ``UNSUPPORTED_DIALECT`` or ``UNSUPPORTED_DRIVER``.
        """
        grammar = GrammarFactory.create(config.dialect)
        primary = self._manager.add(name, config, driver)
        await primary.connect()
        self._compilers[name] = QueryCompiler(
            grammar,
            cache_size=self.config.cache_size,
            caching=self.config.caching,
        )
        logger.info(
            "Connected '%s' (driver=%s, dialect=%s, pooled=%s)",
            name,
            primary.driver_name,
            grammar.dialect_name,
            config.pool is not None,
        )
        return primary

    async def disconnect(self, name: str | None = None) -> None:
        """Close one connection, or all of them when ``name`` is omitted."""
        if name is None:
            await self._manager.close_all()
            self._compilers.clear()
            self._connected = False
            logger.info("Disconnected all connections")
            return
        await self._manager.remove(name)
        self._compilers.pop(name, None)

    async def close(self) -> None:
        await self.disconnect()

    async def __aenter__(self) -> Database:
        return await self.connect()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _resolve(self, name: str | None) -> str:
        return name or self._manager.default

    def connection(self, name: str | None = None) -> Driver:
        """Return the primary driver of ``name``."""
        return self._manager.connection(name)

    def pool(self, name: str | None = None) -> ConnectionPool[Driver]:
        """Return the pool of ``name``."""
        return self._manager.pool(name)

    def compiler(self, name: str | None = None) -> QueryCompiler:
        """Return the compiler of ``name``.

        Raises:
            ConnectionError: ``CONNECTION_NOT_FOUND`` if ``name`` is unknown.
        """
        resolved = self._resolve(name)
        compiler = self._compilers.get(resolved)
        if compiler is None:
            raise ConnectionError(
                f"Connection [{resolved}] not found.",
                code="CONNECTION_NOT_FOUND",
                details={"requested": resolved, "available": sorted(self._compilers)},
            )
        return compiler

    @property
    def connection_names(self) -> list[str]:
        return self._manager.names()

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def table(self, name: str, connection: str | None = None) -> Builder:
        """Start a builder returning plain row dicts."""
        return Builder(self, table=name, connection=connection)

    def query(self, entity: type[EntityType], connection: str | None = None) -> Builder:
        """Start a builder that hydrates rows into ``entity``."""
        return Builder(self, entity=entity, connection=connection)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        sql: str,
        bindings: list[Any] | None = None,
        connection: str | None = None,
    ) -> QueryResult:
        """Run one statement on the routed driver.

        Driver exceptions propagate unchanged.
        """
        name = self._resolve(connection)
        params = list(bindings or [])
        logger.debug("[%s] %s %r", name, sql, params)

        pinned = _pinned.get().get((id(self), name))
        if pinned is not None:
            return await pinned.execute(sql, params)

        if self._manager.has_pool(name):
            async with self._manager.pool(name).connection() as driver:
                return await driver.execute(sql, params)

        return await self._manager.connection(name).execute(sql, params)

    async def select(self, sql: str, bindings: list[Any] | None = None, connection: str | None = None) -> list[Row]:
        return (await self.execute(sql, bindings, connection)).rows

    async def insert(self, sql: str, bindings: list[Any] | None = None, connection: str | None = None) -> Any:
        return (await self.execute(sql, bindings, connection)).insert_id

    async def update(self, sql: str, bindings: list[Any] | None = None, connection: str | None = None) -> int:
        return (await self.execute(sql, bindings, connection)).row_count

    async def delete(self, sql: str, bindings: list[Any] | None = None, connection: str | None = None) -> int:
        return (await self.execute(sql, bindings, connection)).row_count

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self, connection: str | None = None) -> AsyncIterator[Driver]:
        """Run the enclosed statements in one transaction.

        Commits on normal exit and rolls back if the block raises.  Nested
        blocks for the same connection join the outer transaction.  On an
        unpooled connection the primary driver is shared, so statements
        from other tasks issued meanwhile also run inside the transaction.
        """
        name = self._resolve(connection)
        key = (id(self), name)
        current = _pinned.get()
        if key in current:
            yield current[key]
            return

        pool = self._manager.pool(name) if self._manager.has_pool(name) else None
        driver = await pool.acquire() if pool is not None else self._manager.connection(name)
        token = None
        try:
            await driver.begin_transaction()
            token = _pinned.set({**current, key: driver})
            logger.debug("[%s] BEGIN", name)
            try:
                yield driver
            except BaseException:
                await driver.rollback()
                logger.debug("[%s] ROLLBACK", name)
                raise
            try:
                await driver.commit()
            except Exception:
                # Leave the driver outside any transaction before it is
                # reused; the commit error is the one the caller sees.
                try:
                    await driver.rollback()
                except Exception:
                    logger.exception("[%s] ROLLBACK after failed COMMIT failed", name)
                else:
                    logger.debug("[%s] ROLLBACK after failed COMMIT", name)
                raise
            logger.debug("[%s] COMMIT", name)
        finally:
            if token is not None:
                _pinned.reset(token)
            if pool is not None:
                pool.release(driver)
