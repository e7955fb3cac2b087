"""Driver registry (Open/Closed Principle).

``DriverFactory``
    Central registry for :class:`~mortar.connection.driver.Driver`
    implementations.  Connections look drivers up by their configured
    ``driver`` name, so adding a backend never touches the connection
    manager.

Usage::

    from mortar.connection.registry import DriverFactory

    @DriverFactory.register("asyncpg")
    class AsyncpgDriver(Driver):
        ...
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar

from mortar.connection.driver import Driver
from mortar.errors import ConnectionError


class DriverFactory:
    """Registry mapping driver names to :class:`Driver` classes."""

    _drivers: ClassVar[dict[str, type[Driver]]] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[type[Driver]], type[Driver]]:
        """Decorator that registers a driver class under ``name``."""

        def decorator(driver_cls: type[Driver]) -> type[Driver]:
            cls._drivers[name] = driver_cls
            return driver_cls

        return decorator

    @classmethod
    def register_class(cls, name: str, driver_cls: type[Driver]) -> None:
        """Register a driver class without using the decorator form."""
        cls._drivers[name] = driver_cls

    @classmethod
    def create(cls, name: str, url: str | None = None, **options: Any) -> Driver:
        """Instantiate the driver registered for ``name``.

        Raises:
            ConnectionError: ``UNSUPPORTED_DRIVER`` if nothing is registered.
        """
        driver_cls = cls._drivers.get(name)
        if driver_cls is None:
            registered = sorted(cls._drivers)
            raise ConnectionError(
                f"Unsupported driver: '{name}'. Registered drivers: {registered}.",
                code="UNSUPPORTED_DRIVER",
                details={"driver": name, "registered": registered},
            )
        return driver_cls(url, **options)

    @classmethod
    def registered_drivers(cls) -> list[str]:
        """Return the sorted list of registered driver names."""
        return sorted(cls._drivers)
