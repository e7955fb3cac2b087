"""Physical database drivers shipped with mortar.

:class:`SQLAlchemyDriver` imports SQLAlchemy lazily, so this package is
importable without the ``sqlalchemy`` extra installed.
"""
from mortar.connection.registry import DriverFactory
from mortar.drivers.sqlalchemy import SQLAlchemyDriver

DriverFactory.register_class("sqlalchemy", SQLAlchemyDriver)

__all__ = ["SQLAlchemyDriver"]
