"""Unit tests for Database: connection management, routing and transactions."""

from __future__ import annotations

import asyncio

import pytest
from pydantic import ValidationError as PydanticValidationError

from mortar import Database
from mortar.config import ConnectionConfig, DatabaseConfig, PoolConfig
from mortar.connection import ConnectionManager, DriverFactory
from mortar.drivers.sqlalchemy import SQLAlchemyDriver
from mortar.errors import ConnectionError, MortarError
from mortar.testing import MockDriver


def _config(**connections: ConnectionConfig) -> DatabaseConfig:
    default = "default" if "default" in connections else next(iter(connections))
    return DatabaseConfig(default=default, connections=connections)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def test_default_must_name_a_configured_connection():
    with pytest.raises(PydanticValidationError):
        DatabaseConfig(default="main", connections={"other": ConnectionConfig(driver="mock")})


def test_config_rejects_unknown_keys():
    with pytest.raises(PydanticValidationError):
        ConnectionConfig(driver="mock", hostname="db")


def test_pool_config_bounds():
    with pytest.raises(PydanticValidationError):
        PoolConfig(max=0)


# ---------------------------------------------------------------------------
# Factories and manager
# ---------------------------------------------------------------------------


def test_driver_factory_knows_builtin_drivers():
    assert {"mock", "sqlalchemy"} <= set(DriverFactory.registered_drivers())
    assert isinstance(DriverFactory.create("mock"), MockDriver)
    assert isinstance(DriverFactory.create("sqlalchemy", "sqlite://"), SQLAlchemyDriver)


def test_driver_factory_unknown_driver():
    with pytest.raises(ConnectionError) as exc_info:
        DriverFactory.create("oracle")
    assert exc_info.value.code == "UNSUPPORTED_DRIVER"
    assert exc_info.value.to_error_response()["error"] == "UNSUPPORTED_DRIVER"


def test_sqlalchemy_driver_requires_a_target():
    with pytest.raises(ValueError):
        SQLAlchemyDriver()


def test_manager_lookup_errors():
    manager = ConnectionManager()
    manager.add("main", ConnectionConfig(driver="mock"))
    assert manager.default == "main"
    assert manager.names() == ["main"]

    with pytest.raises(ConnectionError) as exc_info:
        manager.connection("replica")
    assert exc_info.value.code == "CONNECTION_NOT_FOUND"
    assert exc_info.value.details["available"] == ["main"]

    with pytest.raises(ConnectionError) as exc_info:
        manager.pool("main")
    assert exc_info.value.code == "POOL_NOT_FOUND"

    with pytest.raises(ConnectionError):
        manager.set_default("replica")


def test_manager_prefers_connection_named_default():
    manager = ConnectionManager()
    manager.add("analytics", ConnectionConfig(driver="mock"))
    manager.add("default", ConnectionConfig(driver="mock"))
    assert manager.default == "default"
    assert manager.has("analytics")
    assert not manager.has_pool()


@pytest.mark.anyio
async def test_manager_remove_disconnects_and_forgets():
    manager = ConnectionManager()
    driver = MockDriver()
    await driver.connect()
    manager.add("main", ConnectionConfig(driver="mock"), driver)
    await manager.remove("main")
    assert not driver.is_connected()
    assert not manager.has("main")


# ---------------------------------------------------------------------------
# Database lifecycle
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_unsupported_dialect_fails_on_connect():
    database = Database(_config(default=ConnectionConfig(driver="mock", dialect="oracle")))
    with pytest.raises(ConnectionError) as exc_info:
        await database.connect()
    assert exc_info.value.code == "UNSUPPORTED_DIALECT"


@pytest.mark.anyio
async def test_context_manager_connects_and_closes():
    driver = MockDriver()
    config = _config(default=ConnectionConfig(driver="mock"))
    async with Database(config, drivers={"default": driver}) as database:
        assert driver.is_connected()
        assert database.connection() is driver
        assert database.connection_names == ["default"]
    assert not driver.is_connected()
    with pytest.raises(ConnectionError):
        database.compiler()


@pytest.mark.anyio
async def test_unknown_connection_name(db):
    with pytest.raises(ConnectionError) as exc_info:
        db.table("users", connection="replica").to_sql()
    assert exc_info.value.code == "CONNECTION_NOT_FOUND"
    assert isinstance(exc_info.value, MortarError)


@pytest.mark.anyio
async def test_statements_route_to_named_connection():
    main, reports = MockDriver(), MockDriver()
    config = _config(
        default=ConnectionConfig(driver="mock", dialect="sqlite"),
        reports=ConnectionConfig(driver="mock", dialect="postgres"),
    )
    async with Database(config, drivers={"default": main, "reports": reports}) as database:
        await database.table("users").where("id", 1).get()
        await database.table("events", connection="reports").where("id", 1).get()

    assert main.last_query.sql == 'SELECT * FROM "users" WHERE "id" = ?'
    assert reports.last_query.sql == 'SELECT * FROM "events" WHERE "id" = $1'


@pytest.mark.anyio
async def test_driver_exceptions_propagate(db, driver: MockDriver):
    async def boom(sql, bindings=None):
        raise RuntimeError("socket closed")

    driver.execute = boom
    with pytest.raises(RuntimeError, match="socket closed"):
        await db.table("users").get()


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_transaction_commits(db, driver: MockDriver):
    async with db.transaction() as tx:
        assert tx is driver
        assert driver.in_transaction()
        await db.table("users").insert({"name": "Ada"})

    assert [q.sql.split(" ")[0] for q in driver.queries] == ["BEGIN", "INSERT", "COMMIT"]
    assert not driver.in_transaction()


@pytest.mark.anyio
async def test_transaction_rolls_back_and_reraises(db, driver: MockDriver):
    with pytest.raises(ValueError):
        async with db.transaction():
            await db.table("users").where("id", 1).delete()
            raise ValueError("abort")

    assert [q.sql.split(" ")[0] for q in driver.queries] == ["BEGIN", "DELETE", "ROLLBACK"]


@pytest.mark.anyio
async def test_nested_transaction_joins_outer(db, driver: MockDriver):
    async with db.transaction() as outer:
        async with db.transaction() as inner:
            assert inner is outer
            await db.table("users").insert({"name": "Ada"})

    assert driver.count_queries("BEGIN") == 1
    assert driver.count_queries("COMMIT") == 1


@pytest.mark.anyio
async def test_failed_commit_rolls_back_and_reraises(db, driver: MockDriver):
    async def refuse() -> None:
        raise RuntimeError("serialization failure")

    driver.commit = refuse
    with pytest.raises(RuntimeError, match="serialization failure"):
        async with db.transaction():
            await db.table("users").insert({"name": "Ada"})

    assert [q.sql.split(" ")[0] for q in driver.queries] == ["BEGIN", "INSERT", "ROLLBACK"]
    assert not driver.in_transaction()


@pytest.mark.anyio
async def test_failed_rollback_after_commit_keeps_commit_error(db, driver: MockDriver):
    async def refuse() -> None:
        raise RuntimeError("serialization failure")

    async def lost() -> None:
        raise OSError("connection lost")

    driver.commit = refuse
    driver.rollback = lost
    with pytest.raises(RuntimeError, match="serialization failure"):
        async with db.transaction():
            await db.table("users").insert({"name": "Ada"})


# ---------------------------------------------------------------------------
# Pooled connections
# ---------------------------------------------------------------------------


def _pooled_config(max_size: int = 2) -> DatabaseConfig:
    return _config(default=ConnectionConfig(driver="mock", pool=PoolConfig(max=max_size)))


@pytest.mark.anyio
async def test_pooled_statements_use_and_release_pool_drivers():
    primary = MockDriver()
    async with Database(_pooled_config(), drivers={"default": primary}) as database:
        await database.table("users").get()
        pool = database.pool()
        assert pool.size == 1
        assert pool.active == 0
        assert primary.count_queries() == 0

        gate = asyncio.Event()

        async def hold() -> None:
            async with database.transaction():
                await gate.wait()

        holders = [asyncio.create_task(hold()) for _ in range(2)]
        await asyncio.sleep(0.01)
        assert pool.active == 2
        assert pool.size == 2

        gate.set()
        await asyncio.gather(*holders)
        assert pool.active == 0
        assert pool.idle == 2

    assert pool.size == 0


@pytest.mark.anyio
async def test_transaction_pins_one_pooled_driver():
    async with Database(_pooled_config(max_size=3), drivers={"default": MockDriver()}) as database:
        async with database.transaction() as tx:
            await database.table("users").insert({"name": "Ada"})
            await database.table("users").where("id", 1).update({"name": "Bob"})

        assert [q.sql.split(" ")[0] for q in tx.queries] == ["BEGIN", "INSERT", "UPDATE", "COMMIT"]
        assert database.pool().active == 0


@pytest.mark.anyio
async def test_failed_commit_on_pooled_driver_rolls_back_before_release():
    async with Database(_pooled_config(), drivers={"default": MockDriver()}) as database:
        with pytest.raises(RuntimeError):
            async with database.transaction() as tx:

                async def refuse() -> None:
                    raise RuntimeError("serialization failure")

                tx.commit = refuse
                await database.table("users").insert({"name": "Ada"})

        assert [q.sql.split(" ")[0] for q in tx.queries] == ["BEGIN", "INSERT", "ROLLBACK"]
        assert not tx.in_transaction()
        pool = database.pool()
        assert pool.active == 0
        assert pool.idle == 1
