"""Driver that runs compiled SQL on a SQLAlchemy engine.

Install the optional dependency before using this module::

    pip install "mortar-orm[sqlalchemy]"

Example::

    config = ConnectionConfig(driver="sqlalchemy", dialect="sqlite", url="sqlite:///app.db")

The compiled SQL is handed to the DBAPI cursor unchanged through
:meth:`sqlalchemy.engine.Connection.exec_driver_sql`, so the connection's
``dialect`` must emit the placeholder style of the underlying DBAPI
(``sqlite`` → qmark).

SQLAlchemy's engine API is synchronous; every call runs on a single worker
thread owned by the driver so a DBAPI connection never crosses threads.
"""
from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import TYPE_CHECKING, Any, TypeVar

from mortar.connection.driver import Driver, QueryResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy import Connection, Engine, RootTransaction

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SQLAlchemyDriver(Driver):
    """Adapter from the :class:`Driver` contract to a SQLAlchemy ``Engine``.

    Args:
        url: SQLAlchemy database URL.
        engine: Pre-built engine to use instead of creating one from ``url``.
            The driver does not dispose engines it did not create.
        **options: Keyword arguments passed to
            :func:`sqlalchemy.create_engine`.
    """

    def __init__(self, url: str | None = None, engine: Engine | None = None, **options: Any) -> None:
        super().__init__(url, **options)
        if engine is None and url is None:
            raise ValueError("SQLAlchemyDriver needs either a url or an engine.")
        self._engine = engine
        self._owns_engine = engine is None
        self._conn: Connection | None = None
        self._transaction: RootTransaction | None = None
        self._executor: ThreadPoolExecutor | None = None

    @property
    def driver_name(self) -> str:
        return "sqlalchemy"

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mortar-sqlalchemy")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, partial(fn, *args))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        if self._conn is not None:
            return
        await self._run(self._connect_sync)
        logger.debug("SQLAlchemy driver connected to %s", self._engine.url if self._engine else self.url)

    def _connect_sync(self) -> None:
        if self._engine is None:
            try:
                from sqlalchemy import create_engine
            except ImportError as exc:
                raise ImportError(
                    "SQLAlchemy is required for SQLAlchemyDriver. "
                    'Install it with: pip install "mortar-orm[sqlalchemy]"'
                ) from exc
            self._engine = create_engine(self.url, **self.options)
        self._conn = self._engine.connect()

    async def disconnect(self) -> None:
        if self._conn is None:
            return
        await self._run(self._disconnect_sync)
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def _disconnect_sync(self) -> None:
        assert self._conn is not None
        if self._transaction is not None and self._transaction.is_active:
            self._transaction.rollback()
        self._transaction = None
        self._conn.close()
        self._conn = None
        if self._owns_engine and self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def is_connected(self) -> bool:
        return self._conn is not None

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    async def execute(self, sql: str, bindings: list[Any] | None = None) -> QueryResult:
        if self._conn is None:
            await self.connect()
        return await self._run(self._execute_sync, sql, tuple(bindings or ()))

    def _execute_sync(self, sql: str, params: tuple[Any, ...]) -> QueryResult:
        assert self._conn is not None
        result = self._conn.exec_driver_sql(sql, params)
        if result.returns_rows:
            rows = [dict(row._mapping) for row in result]
            outcome = QueryResult(rows=rows, row_count=len(rows))
        else:
            outcome = QueryResult(row_count=result.rowcount, insert_id=result.lastrowid)
        if self._transaction is None:
            self._conn.commit()
        return outcome

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def begin_transaction(self) -> None:
        if self._conn is None:
            await self.connect()
        await self._run(self._begin_sync)

    def _begin_sync(self) -> None:
        assert self._conn is not None
        self._transaction = self._conn.begin()

    async def commit(self) -> None:
        await self._run(self._finish_sync, True)

    async def rollback(self) -> None:
        await self._run(self._finish_sync, False)

    def _finish_sync(self, commit: bool) -> None:
        transaction, self._transaction = self._transaction, None
        if transaction is None:
            return
        if commit:
            transaction.commit()
        else:
            transaction.rollback()

    def in_transaction(self) -> bool:
        return self._transaction is not None
