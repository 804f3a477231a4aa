"""asyncpg pool handles handed out by `PoolRegistry`.

`WritablePool` and `ReadablePool` wrap one asyncpg pool each. Only
`WritablePool` can open a transaction, so a transaction can never be
started on the readable side.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, ClassVar, Literal, Protocol, Self

import asyncpg
from asyncpg import Pool, Record

from ...core.enums import PoolRole
from ...logger import get_logger
from .exceptions import PoolClosedError, PoolExhaustedError, PoolNotInitializedError, PoolUnavailableError
from .health import PoolHealth

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from types import TracebackType

    from asyncpg.pool import PoolConnectionProxy

    from .config import PoolConfig

logger = get_logger(__name__)

type IsolationLevel = Literal["read_committed", "repeatable_read", "serializable"]

# Raised at checkout when the endpoint refuses, drops or is not ready for connections.
CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
)


class QueryExecutor(Protocol):
    """Anything statements can be run against: a pool or a pinned transaction."""

    async def aexecute(self, query: str, *args: object, timeout: float | None = None) -> str: ...

    async def afetch(self, query: str, *args: object, timeout: float | None = None) -> list[Record]: ...

    async def afetchrow(self, query: str, *args: object, timeout: float | None = None) -> Record | None: ...

    async def afetchval(self, query: str, *args: object, timeout: float | None = None) -> Any: ...


class AsyncConnectionPool:
    """One asyncpg pool against one endpoint.

    Not constructed directly; `PoolRegistry` builds both pools through
    `build_pool()`.
    """

    role: ClassVar[PoolRole]

    __slots__ = ("_closed", "_config", "_init_lock", "_pool")

    def __init__(self, config: PoolConfig) -> None:
        self._config = config
        self._pool: Pool[Record] | None = None
        self._closed = False
        self._init_lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(endpoint={self._config.endpoint!r}, closed={self._closed})"

    async def __aenter__(self) -> Self:
        await self.ainitialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    @property
    def config(self) -> PoolConfig:
        return self._config

    @property
    def endpoint(self) -> str:
        return self._config.endpoint

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def pool(self) -> Pool[Record]:
        """Underlying asyncpg pool.

        Raises
        ------
        PoolClosedError
            If the pool has been closed or terminated.
        PoolNotInitializedError
            If `ainitialize()` has not run yet.
        """
        if self._closed:
            msg = f"{self.role} pool at {self.endpoint} is closed"
            raise PoolClosedError(msg)
        if self._pool is None:
            msg = f"{self.role} pool at {self.endpoint} not initialized. Call ainitialize() first."
            raise PoolNotInitializedError(msg)
        return self._pool

    async def ainitialize(self) -> None:
        """Create the asyncpg pool.

        With ``min_connections=0`` no connection is opened here; connections
        are established on first checkout. Idempotent and lock-guarded so
        concurrent callers cannot create two pools.
        """
        async with self._init_lock:
            if self._closed:
                msg = f"{self.role} pool at {self.endpoint} is closed and cannot be reinitialized"
                raise PoolClosedError(msg)
            if self._pool is not None:
                return

            self._pool = await asyncpg.create_pool(**self._config.to_pool_params())
            logger.info("Connection pool initialized", role=str(self.role), **self._config.to_log_fields())

    async def aclose(self) -> None:
        """Close gracefully, waiting for checked-out connections to be released.

        Unbounded on its own; `ShutdownCoordinator` applies the grace period.
        """
        if self._closed and self._pool is None:
            return
        self._closed = True
        if self._pool is None:
            return

        await self._pool.close()
        self._pool = None
        logger.info("Connection pool closed", role=str(self.role), endpoint=self.endpoint)

    def discard(self) -> None:
        """Drop a half-built pool and return to the uninitialized state.

        Unlike `terminate()` the handle stays usable: a later `ainitialize()`
        creates a fresh asyncpg pool.
        """
        if self._pool is None:
            return

        self._pool.terminate()
        self._pool = None
        logger.warning("Connection pool discarded", role=str(self.role), endpoint=self.endpoint)

    def terminate(self) -> None:
        """Close every connection immediately without waiting for in-flight work."""
        self._closed = True
        if self._pool is None:
            return

        self._pool.terminate()
        self._pool = None
        logger.warning("Connection pool terminated", role=str(self.role), endpoint=self.endpoint)

    async def aprobe(self) -> PoolHealth:
        """Run ``SELECT 1`` once. Never raises; failures become an unhealthy result."""
        if self._closed:
            return PoolHealth.unhealthy(
                role=self.role, endpoint=self.endpoint, pool_max_size=self.pool_max_size, error="Pool closed"
            )
        if self._pool is None:
            return PoolHealth.unhealthy(
                role=self.role,
                endpoint=self.endpoint,
                pool_max_size=self.pool_max_size,
                error="Pool not initialized",
            )

        started = time.perf_counter()
        try:
            async with asyncio.timeout(self._config.connect_timeout_s), self.aacquire() as conn:
                await conn.fetchval("SELECT 1")
        except Exception as e:
            return PoolHealth.unhealthy(
                role=self.role,
                endpoint=self.endpoint,
                pool_max_size=self.pool_max_size,
                error=f"{type(e).__name__}: {e}",
            )

        return PoolHealth.healthy(
            role=self.role,
            endpoint=self.endpoint,
            latency_s=time.perf_counter() - started,
            pool_size=self.pool_size,
            pool_idle_size=self.pool_idle_size,
            pool_max_size=self.pool_max_size,
        )

    async def awarmup(self) -> None:
        """Open ``min_connections`` connections up front and validate each."""
        pool = self.pool
        target = self._config.min_connections
        connections: list[PoolConnectionProxy[Record]] = []
        try:
            for _ in range(target):
                conn = await pool.acquire(timeout=self._config.connect_timeout_s)
                connections.append(conn)
                await conn.fetchval("SELECT 1")
        finally:
            for conn in connections:
                await pool.release(conn)

        logger.info("Pool warmup completed", role=str(self.role), connections=target)

    @asynccontextmanager
    async def aacquire(self) -> AsyncIterator[PoolConnectionProxy[Record]]:
        """Check out one connection; it is released on every exit path.

        Raises
        ------
        PoolExhaustedError
            No connection became available within ``connect_timeout_ms``: every
            connection is checked out, or opening a new one did not finish in time.
        PoolUnavailableError
            The endpoint refused or dropped the connection.
        """
        pool = self.pool
        try:
            conn = await pool.acquire(timeout=self._config.connect_timeout_s)
        except TimeoutError as e:
            msg = (
                f"No connection from {self.role} pool at {self.endpoint} within {self._config.connect_timeout_ms}ms "
                f"(pool size {self.pool_size}/{self.pool_max_size}; all in use or connect timed out)"
            )
            raise PoolExhaustedError(msg, self.endpoint) from e
        except CONNECTION_ERRORS as e:
            msg = f"{self.role} pool endpoint {self.endpoint} unavailable: {e}"
            raise PoolUnavailableError(msg, self.endpoint) from e

        try:
            yield conn
        finally:
            await pool.release(conn)

    async def aexecute(self, query: str, *args: object, timeout: float | None = None) -> str:
        async with self.aacquire() as conn:
            return await conn.execute(query, *args, timeout=timeout)

    async def afetch(self, query: str, *args: object, timeout: float | None = None) -> list[Record]:
        async with self.aacquire() as conn:
            return await conn.fetch(query, *args, timeout=timeout)

    async def afetchrow(self, query: str, *args: object, timeout: float | None = None) -> Record | None:
        async with self.aacquire() as conn:
            return await conn.fetchrow(query, *args, timeout=timeout)

    async def afetchval(self, query: str, *args: object, timeout: float | None = None) -> Any:
        async with self.aacquire() as conn:
            return await conn.fetchval(query, *args, timeout=timeout)

    @property
    def pool_size(self) -> int:
        """Open connections (active + idle). Zero once closed."""
        if self._pool is None:
            return 0
        return self._pool.get_size()

    @property
    def pool_idle_size(self) -> int:
        if self._pool is None:
            return 0
        return self._pool.get_idle_size()

    @property
    def pool_max_size(self) -> int:
        return self._config.max_connections


class ReadablePool(AsyncConnectionPool):
    """Replica-side pool. Single statements only; may lag the writable pool."""

    role = PoolRole.READABLE
    __slots__ = ()


class WritablePool(AsyncConnectionPool):
    """Primary-side pool. The only pool that can open a transaction."""

    role = PoolRole.WRITABLE
    __slots__ = ()

    @asynccontextmanager
    async def atransaction(
        self,
        isolation: IsolationLevel = "read_committed",
        *,
        readonly: bool = False,
        deferrable: bool = False,
    ) -> AsyncIterator[PinnedTransaction]:
        """Check out one connection and run a transaction on it.

        Every statement issued through the yielded handle, reads included,
        runs on that one primary connection.
        """
        async with (
            self.aacquire() as conn,
            conn.transaction(isolation=isolation, readonly=readonly, deferrable=deferrable),
        ):
            yield PinnedTransaction(self, conn)


class PinnedTransaction:
    """Statement handle for a transaction pinned to one writable connection."""

    __slots__ = ("_connection", "_pool")

    def __init__(self, pool: WritablePool, connection: PoolConnectionProxy[Record]) -> None:
        self._pool = pool
        self._connection = connection

    @property
    def pool(self) -> WritablePool:
        return self._pool

    @property
    def connection(self) -> PoolConnectionProxy[Record]:
        return self._connection

    async def aexecute(self, query: str, *args: object, timeout: float | None = None) -> str:
        return await self._connection.execute(query, *args, timeout=timeout)

    async def afetch(self, query: str, *args: object, timeout: float | None = None) -> list[Record]:
        return await self._connection.fetch(query, *args, timeout=timeout)

    async def afetchrow(self, query: str, *args: object, timeout: float | None = None) -> Record | None:
        return await self._connection.fetchrow(query, *args, timeout=timeout)

    async def afetchval(self, query: str, *args: object, timeout: float | None = None) -> Any:
        return await self._connection.fetchval(query, *args, timeout=timeout)
