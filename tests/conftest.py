"""Shared pytest fixtures for mortar unit and integration tests."""
from __future__ import annotations

import pytest

from mortar import Database, DatabaseConfig
from mortar.config import ConnectionConfig
from mortar.testing import MockDriver


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def driver() -> MockDriver:
    """A fresh recording driver."""
    return MockDriver()


@pytest.fixture
async def db(driver: MockDriver):
    """A connected sqlite-dialect Database whose default connection is ``driver``."""
    config = DatabaseConfig(
        connections={"default": ConnectionConfig(driver="mock", dialect="sqlite")},
    )
    database = Database(config, drivers={"default": driver})
    async with database:
        yield database
