"""Pydantic models for connection, pool and compiler configuration.

A :class:`DatabaseConfig` is handed to :class:`~mortar.database.Database`
at startup; nothing in mortar reads configuration from module-level
state::

    config = DatabaseConfig(
        connections={
            "default": ConnectionConfig(
                driver="sqlalchemy",
                dialect="sqlite",
                url="sqlite:///app.db",
                pool=PoolConfig(max=5),
            ),
        },
    )
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PoolConfig(BaseModel):
    """Bounds of a connection pool.

    Attributes:
        max: Maximum number of connections (idle + in use).
        acquire_timeout: Seconds ``acquire()`` may wait for a release before
            raising :class:`~mortar.errors.PoolTimeoutError`.  ``None``
            waits indefinitely.
    """

    model_config = ConfigDict(extra="forbid")

    max: int = Field(default=10, ge=1)
    acquire_timeout: float | None = Field(default=None, gt=0)


class ConnectionConfig(BaseModel):
    """One named connection.

    Attributes:
        driver: Registered driver name (``'sqlalchemy'``, ``'mock'``, ...).
        dialect: Registered grammar name (``'sqlite'``, ``'postgres'``, ``'mysql'``).
        url: Driver-specific connection URL.
        options: Extra keyword arguments passed to the driver.
        pool: When set, statements run on pooled driver instances.
    """

    model_config = ConfigDict(extra="forbid")

    driver: str = "sqlalchemy"
    dialect: str = "sqlite"
    url: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)
    pool: PoolConfig | None = None


class DatabaseConfig(BaseModel):
    """Top-level configuration for a :class:`~mortar.database.Database`.

    Attributes:
        default: Name of the connection used when none is given.
        connections: Named connection configurations.
        cache_size: Capacity of each connection's compiled-query cache.
        caching: Enable compiled-query caching.
    """

    model_config = ConfigDict(extra="forbid")

    default: str = "default"
    connections: dict[str, ConnectionConfig] = Field(default_factory=dict)
    cache_size: int = Field(default=500, ge=1)
    caching: bool = True

    @model_validator(mode="after")
    def _check_default(self) -> DatabaseConfig:
        if self.connections and self.default not in self.connections:
            raise ValueError(
                f"Default connection '{self.default}' is not among the configured "
                f"connections: {sorted(self.connections)}."
            )
        return self
