"""Named connections and their optional pools.

A :class:`ConnectionManager` belongs to one
:class:`~mortar.database.Database`; there is no process-wide registry.
Each named connection has a primary driver and, when its config carries a
``pool`` section, a :class:`~mortar.connection.pool.ConnectionPool` of
further driver instances built from the same config.
"""
from __future__ import annotations

import logging

from mortar.config import ConnectionConfig
from mortar.connection.driver import Driver
from mortar.connection.pool import ConnectionPool
from mortar.connection.registry import DriverFactory
from mortar.errors import ConnectionError

logger = logging.getLogger(__name__)


def _build_driver(config: ConnectionConfig) -> Driver:
    return DriverFactory.create(config.driver, config.url, **config.options)


class ConnectionManager:
    """Holds the drivers and pools of one :class:`~mortar.database.Database`."""

    def __init__(self, default: str = "default") -> None:
        self._connections: dict[str, Driver] = {}
        self._configs: dict[str, ConnectionConfig] = {}
        self._pools: dict[str, ConnectionPool[Driver]] = {}
        self._default = default

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add(self, name: str, config: ConnectionConfig, driver: Driver | None = None) -> Driver:
        """Register a named connection and return its primary driver.

        Args:
            name: Connection name.
            config: Connection configuration.
            driver: Pre-built driver to use instead of one from
                :class:`DriverFactory` (handy for tests).

        Raises:
            ConnectionError: ``UNSUPPORTED_DRIVER`` if ``config.driver`` is
                not registered and no ``driver`` was given.
        """
        primary = driver if driver is not None else _build_driver(config)
        self._connections[name] = primary
        self._configs[name] = config

        if config.pool is not None:
            self._pools[name] = ConnectionPool(
                config.pool,
                create=lambda: self._open_pooled(config),
                destroy=self._close_pooled,
            )

        if len(self._connections) == 1 or name == "default":
            self._default = name
        logger.debug("Registered connection '%s' (driver=%s)", name, config.driver)
        return primary

    @staticmethod
    async def _open_pooled(config: ConnectionConfig) -> Driver:
        driver = _build_driver(config)
        await driver.connect()
        return driver

    @staticmethod
    async def _close_pooled(driver: Driver) -> None:
        if driver.is_connected():
            await driver.disconnect()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def default(self) -> str:
        return self._default

    def set_default(self, name: str) -> None:
        """Make ``name`` the default connection.

        Raises:
            ConnectionError: ``CONNECTION_NOT_FOUND`` if ``name`` is unknown.
        """
        if name not in self._connections:
            raise ConnectionError(
                f"Cannot set default: connection [{name}] does not exist.",
                code="CONNECTION_NOT_FOUND",
                details={"requested": name},
            )
        self._default = name

    def connection(self, name: str | None = None) -> Driver:
        """Return the primary driver of ``name`` (default connection if omitted).

        Raises:
            ConnectionError: ``CONNECTION_NOT_FOUND`` if ``name`` is unknown.
        """
        resolved = name or self._default
        driver = self._connections.get(resolved)
        if driver is None:
            raise ConnectionError(
                f"Connection [{resolved}] not found.",
                code="CONNECTION_NOT_FOUND",
                details={"requested": resolved, "available": self.names()},
            )
        return driver

    def config(self, name: str | None = None) -> ConnectionConfig:
        """Return the configuration ``name`` was registered with."""
        self.connection(name)
        return self._configs[name or self._default]

    def pool(self, name: str | None = None) -> ConnectionPool[Driver]:
        """Return the pool of ``name``.

        Raises:
            ConnectionError: ``POOL_NOT_FOUND`` if the connection has no pool.
        """
        resolved = name or self._default
        pool = self._pools.get(resolved)
        if pool is None:
            raise ConnectionError(
                f"Connection pool [{resolved}] not found.",
                code="POOL_NOT_FOUND",
                details={"requested": resolved},
            )
        return pool

    def has(self, name: str) -> bool:
        return name in self._connections

    def has_pool(self, name: str | None = None) -> bool:
        return (name or self._default) in self._pools

    def names(self) -> list[str]:
        return list(self._connections)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def remove(self, name: str) -> None:
        """Disconnect ``name``, drain its pool and forget it."""
        driver = self._connections.pop(name, None)
        self._configs.pop(name, None)
        if driver is not None:
            if driver.is_connected():
                await driver.disconnect()
            if name == self._default:
                self._default = next(iter(self._connections), "default")
            logger.info("Closed connection '%s'", name)

        pool = self._pools.pop(name, None)
        if pool is not None:
            await pool.drain()

    async def close_all(self) -> None:
        """Disconnect every driver and drain every pool."""
        for name in list(self._connections):
            await self.remove(name)
        for pool in self._pools.values():
            await pool.drain()
        self._pools.clear()
        self._default = "default"
