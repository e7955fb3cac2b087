"""Generic async pool of reusable driver connections.

The pool owns every resource it created.  ``acquire()`` transfers
ownership to the caller; ``release()`` transfers it back, either to the
oldest pending waiter or to the idle list.  Resources are destroyed only
by :meth:`ConnectionPool.drain`.

Usage::

    pool = ConnectionPool(PoolConfig(max=5), create=open_conn, destroy=close_conn)

    async with pool.connection() as conn:
        await conn.execute("SELECT 1")
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar

from mortar.config import PoolConfig
from mortar.errors import PoolDrainedError, PoolTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

PoolFactory = Callable[[], Awaitable[T]]
PoolDestroy = Callable[[T], Awaitable[None]]

# Resolves a waiter whose turn came from a failed create rather than a
# release; the waiter loops back and creates in the freed slot.
_RETRY: Any = object()


class ConnectionPool(Generic[T]):
    """Bounded pool with FIFO waiters.

    Args:
        config: Pool bounds (``max``, optional ``acquire_timeout``).
        create: Coroutine factory producing a new resource.
        destroy: Optional coroutine closing a resource during :meth:`drain`.
    """

    def __init__(
        self,
        config: PoolConfig,
        create: PoolFactory[T],
        destroy: PoolDestroy[T] | None = None,
    ) -> None:
        self._max = config.max
        self._timeout = config.acquire_timeout
        self._create = create
        self._destroy = destroy
        self._available: deque[T] = deque()
        # Keyed by id() so unhashable resources can be pooled too.
        self._in_use: dict[int, T] = {}
        self._pending: deque[asyncio.Future[Any]] = deque()
        self._creating = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def max(self) -> int:
        return self._max

    @property
    def size(self) -> int:
        """Resources owned by the pool (idle + in use)."""
        return len(self._available) + len(self._in_use)

    @property
    def idle(self) -> int:
        return len(self._available)

    @property
    def active(self) -> int:
        return len(self._in_use)

    @property
    def waiting(self) -> int:
        return sum(1 for fut in self._pending if not fut.done())

    # ------------------------------------------------------------------
    # Acquire / release
    # ------------------------------------------------------------------

    async def acquire(self) -> T:
        """Return an idle resource, a new one, or wait for a release.

        Raises:
            PoolTimeoutError: If ``acquire_timeout`` elapses first.
            PoolDrainedError: If the pool is drained while waiting.
        """
        while True:
            if self._available:
                resource = self._available.popleft()
                self._in_use[id(resource)] = resource
                return resource

            if self.size + self._creating < self._max:
                return await self._create_tracked()

            result = await self._wait()
            if result is not _RETRY:
                return result

    async def _create_tracked(self) -> T:
        self._creating += 1
        try:
            resource = await self._create()
        except BaseException:
            self._creating -= 1
            # The reserved slot is free again; let the oldest waiter use it.
            self._wake_for_retry()
            raise
        self._creating -= 1
        self._in_use[id(resource)] = resource
        logger.debug("Pool created resource (%d/%d)", self.size, self._max)
        return resource

    async def _wait(self) -> Any:
        fut: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending.append(fut)
        logger.debug("Pool saturated (%d/%d); %d waiting", self.size, self._max, self.waiting)
        try:
            if self._timeout is None:
                return await fut
            return await asyncio.wait_for(fut, self._timeout)
        except asyncio.TimeoutError as exc:
            self._abandon(fut)
            raise PoolTimeoutError(self._timeout, self._max) from exc
        except asyncio.CancelledError:
            self._abandon(fut)
            raise

    def _next_waiter(self) -> asyncio.Future[Any] | None:
        while self._pending:
            fut = self._pending.popleft()
            if not fut.done():
                return fut
        return None

    def _wake_for_retry(self) -> None:
        fut = self._next_waiter()
        if fut is not None:
            fut.set_result(_RETRY)

    def release(self, resource: T) -> None:
        """Give ``resource`` back to the pool.

        Ignored when the resource is not currently tracked as in use.  The
        oldest live waiter receives it directly; otherwise it becomes idle.
        """
        if self._in_use.pop(id(resource), None) is None:
            logger.debug("Pool ignored release of an untracked resource")
            return

        fut = self._next_waiter()
        if fut is not None:
            self._in_use[id(resource)] = resource
            fut.set_result(resource)
            return

        self._available.append(resource)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[T]:
        """Acquire a resource for the duration of the ``async with`` block."""
        resource = await self.acquire()
        try:
            yield resource
        finally:
            self.release(resource)

    def _abandon(self, fut: asyncio.Future[Any]) -> None:
        # A release or a retry signal may have resolved the future in the
        # same loop iteration the waiter gave up; pass it on.
        if fut.done() and not fut.cancelled() and fut.exception() is None:
            result = fut.result()
            if result is _RETRY:
                self._wake_for_retry()
            else:
                self.release(result)
            return
        fut.cancel()
        try:
            self._pending.remove(fut)
        except ValueError:
            pass

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def drain(self) -> None:
        """Destroy every resource and reject pending waiters.

        State is snapshotted and cleared first, so releases that arrive
        while resources are being destroyed are ignored.  Every resource is
        destroyed even if some ``destroy`` calls fail; the first failure is
        re-raised afterwards.
        """
        resources = [*self._available, *self._in_use.values()]
        pending = list(self._pending)
        self._available.clear()
        self._in_use.clear()
        self._pending.clear()

        rejected = 0
        for fut in pending:
            if not fut.done():
                fut.set_exception(PoolDrainedError())
                rejected += 1
        if rejected:
            logger.warning("Pool drained with %d pending acquire(s); rejecting them", rejected)

        first_error: Exception | None = None
        if self._destroy is not None:
            for resource in resources:
                try:
                    await self._destroy(resource)
                except Exception as exc:
                    logger.exception("Pool failed to destroy %r", resource)
                    if first_error is None:
                        first_error = exc
        logger.debug("Pool drained %d resource(s)", len(resources))
        if first_error is not None:
            raise first_error
