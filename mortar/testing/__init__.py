"""Test helpers: a recording driver registered under the name ``mock``."""
from mortar.connection.registry import DriverFactory
from mortar.testing.mock_driver import MockDriver, RecordedQuery

DriverFactory.register_class("mock", MockDriver)

__all__ = ["MockDriver", "RecordedQuery"]
