"""mortar connection layer: driver contract, pools and named connections."""
from mortar.connection.driver import Driver, QueryResult, Row
from mortar.connection.manager import ConnectionManager
from mortar.connection.pool import ConnectionPool
from mortar.connection.registry import DriverFactory

__all__ = [
    "ConnectionManager",
    "ConnectionPool",
    "Driver",
    "DriverFactory",
    "QueryResult",
    "Row",
]
