"""Writable/readable pool registry with intent-based selection.

Routing Rule
------------
Each logical operation declares its intent and asks the registry for a pool:

- ``Intent.WRITE`` -> the writable (primary) pool
- ``Intent.READ``  -> the readable (replica) pool

Intent is declared by the caller, which already knows whether it is
authoring a SELECT or an INSERT. Statement text is never parsed to guess it.

Transactions
------------
A transaction always runs on the writable pool, even when some of its
statements only read. The readable pool replicates asynchronously, so a
transaction spread across both pools could miss rows it wrote a moment
earlier. `atransaction()` is the only way in and it always selects the
writable pool; `ReadablePool` has no ``atransaction`` at all.

Lifecycle
---------
``UNINITIALIZED -> LIVE -> CLOSED``. `select()` only works while ``LIVE``;
nothing leads back to ``LIVE`` once closed.

Usage
-----
>>> registry = PoolRegistry(config)
>>> async with registry:
...     users = await registry.select(Intent.READ).afetch("SELECT * FROM users")
...     async with registry.atransaction() as tx:
...         owner = await tx.afetchval("SELECT author_id FROM posts WHERE id = $1 FOR UPDATE", post_id)
...         await tx.aexecute("DELETE FROM posts WHERE id = $1", post_id)
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Literal, Self, overload

from ...core.enums import Intent, PoolRole, RegistryState
from ...logger import get_logger
from .exceptions import RegistryClosedError, RegistryNotLiveError
from .factory import build_pool
from .shutdown import ShutdownCoordinator

if TYPE_CHECKING:
    import types
    from collections.abc import AsyncIterator

    from .config import RegistryConfig
    from .pool import AsyncConnectionPool, IsolationLevel, PinnedTransaction, ReadablePool, WritablePool

logger = get_logger(__name__)


class PoolRegistry:
    """Owns exactly one writable and one readable pool for its lifetime.

    The two pools are distinct instances even when both configs resolve to
    the same host and port.

    Attributes
    ----------
    writable : WritablePool
        Pool for writes, read-after-write reads and every transaction.
    readable : ReadablePool
        Pool for standalone reads that tolerate replication lag.
    """

    __slots__ = ("_config", "_init_lock", "_readable", "_state", "_writable")

    def __init__(self, config: RegistryConfig) -> None:
        self._config = config
        self._writable: WritablePool = build_pool(config.writable, PoolRole.WRITABLE)
        self._readable: ReadablePool = build_pool(config.readable, PoolRole.READABLE)
        self._state = RegistryState.UNINITIALIZED
        self._init_lock = asyncio.Lock()

    def __repr__(self) -> str:
        return (
            f"PoolRegistry(state={self._state}, writable={self._writable.endpoint!r}, "
            f"readable={self._readable.endpoint!r})"
        )

    async def __aenter__(self) -> Self:
        await self.ainitialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        if exc_type is not None and exc_val is not None:
            logger.error(
                "PoolRegistry exiting with exception",
                exc_type=exc_type.__name__,
                exc_val=str(exc_val),
            )
        await self.ashutdown()

    @property
    def config(self) -> RegistryConfig:
        return self._config

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def writable(self) -> WritablePool:
        """Writable pool, regardless of state. Handlers go through `select()`."""
        return self._writable

    @property
    def readable(self) -> ReadablePool:
        """Readable pool, regardless of state. Handlers go through `select()`."""
        return self._readable

    async def ainitialize(self) -> None:
        """Initialize both pools concurrently and move to ``LIVE``.

        Raises
        ------
        RegistryClosedError
            If the registry has already been shut down.
        Exception
            If either pool fails to initialize. Any pool already built is
            discarded and the registry stays ``UNINITIALIZED``, so the call can
            be retried.
        """
        async with self._init_lock:
            if self._state is RegistryState.CLOSED:
                msg = "PoolRegistry is closed and cannot be reinitialized"
                raise RegistryClosedError(msg, self._state)
            if self._state is RegistryState.LIVE:
                return

            results = await asyncio.gather(
                self._writable.ainitialize(),
                self._readable.ainitialize(),
                return_exceptions=True,
            )
            errors = [result for result in results if isinstance(result, BaseException)]
            if errors:
                self._writable.discard()
                self._readable.discard()
                logger.error("PoolRegistry failed to initialize", errors=[repr(error) for error in errors])
                raise errors[0]

            self._state = RegistryState.LIVE
            logger.info(
                "PoolRegistry live",
                writable=self._writable.endpoint,
                readable=self._readable.endpoint,
            )

    @overload
    def select(self, intent: Literal[Intent.WRITE, True]) -> WritablePool: ...
    @overload
    def select(self, intent: Literal[Intent.READ, False]) -> ReadablePool: ...
    @overload
    def select(self, intent: Intent | bool) -> AsyncConnectionPool: ...
    def select(self, intent: Intent | bool) -> AsyncConnectionPool:
        """Return the pool that serves ``intent``.

        Parameters
        ----------
        intent
            ``Intent.WRITE`` / ``True`` for the writable pool,
            ``Intent.READ`` / ``False`` for the readable pool.

        Raises
        ------
        RegistryNotLiveError
            Before `ainitialize()`.
        RegistryClosedError
            After shutdown.
        """
        self._require_live()
        if isinstance(intent, bool):
            intent = Intent.from_flag(intent)
        return self._writable if intent == Intent.WRITE else self._readable

    @asynccontextmanager
    async def atransaction(
        self,
        isolation: IsolationLevel = "read_committed",
        *,
        readonly: bool = False,
    ) -> AsyncIterator[PinnedTransaction]:
        """Run a transaction pinned to one writable connection.

        Yields
        ------
        PinnedTransaction
            Handle whose every statement runs on the same primary connection.
        """
        async with self.select(Intent.WRITE).atransaction(isolation, readonly=readonly) as tx:
            yield tx

    async def ashutdown(self, grace_period_s: float | None = None) -> None:
        """Close both pools through a `ShutdownCoordinator`."""
        await ShutdownCoordinator(self, grace_period_s).ashutdown()

    def mark_closed(self) -> bool:
        """Move to ``CLOSED``. Returns False if the registry was already closed."""
        if self._state is RegistryState.CLOSED:
            return False
        previous, self._state = self._state, RegistryState.CLOSED
        logger.info("PoolRegistry closed to new work", previous_state=str(previous))
        return True

    def _require_live(self) -> None:
        if self._state is RegistryState.LIVE:
            return
        if self._state is RegistryState.CLOSED:
            msg = "PoolRegistry is closed; no pool can be selected after shutdown"
            raise RegistryClosedError(msg, self._state)
        msg = "PoolRegistry not initialized. Call ainitialize() first."
        raise RegistryNotLiveError(msg, self._state)
