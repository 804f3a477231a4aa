"""Graceful, bounded shutdown of the writable/readable pool pair."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from ...logger import get_logger
from .exceptions import ShutdownError
from .pool import CONNECTION_ERRORS

if TYPE_CHECKING:
    from ...core.enums import PoolRole
    from .pool import AsyncConnectionPool
    from .registry import PoolRegistry

logger = get_logger(__name__)


class ShutdownCoordinator:
    """Drains and closes both pools of a registry concurrently.

    Call once. The registry is moved to ``CLOSED`` before any pool is
    touched, so no new work can select a pool while draining. A repeated
    call logs a warning and returns.

    Each pool gets ``grace_period_s`` to finish in-flight work; a pool still
    busy after that is terminated and reported as a failure. A pool whose
    endpoint is already gone is terminated without being reported.

    Examples
    --------
    >>> coordinator = ShutdownCoordinator(registry, grace_period_s=10.0)
    >>> await coordinator.ashutdown()
    """

    __slots__ = ("_grace_period_s", "_registry")

    def __init__(self, registry: PoolRegistry, grace_period_s: float | None = None) -> None:
        self._registry = registry
        self._grace_period_s = (
            grace_period_s if grace_period_s is not None else registry.config.shutdown_grace_period_s
        )

    @property
    def grace_period_s(self) -> float:
        return self._grace_period_s

    async def ashutdown(self) -> None:
        """Close both pools, then raise if either failed.

        Raises
        ------
        ShutdownError
            Naming every pool that did not close cleanly; chained to the
            first failure.
        """
        if not self._registry.mark_closed():
            logger.warning("Shutdown already performed; ignoring repeated call")
            return

        pools: tuple[AsyncConnectionPool, ...] = (self._registry.writable, self._registry.readable)
        logger.info("Closing database pools", grace_period_s=self._grace_period_s)

        results = await asyncio.gather(*(self._aclose_pool(pool) for pool in pools), return_exceptions=True)

        failures: dict[PoolRole, BaseException] = {
            pool.role: result for pool, result in zip(pools, results, strict=True) if isinstance(result, BaseException)
        }
        if failures:
            logger.error(
                "Database pools did not shut down cleanly",
                failures={str(role): repr(error) for role, error in failures.items()},
            )
            raise ShutdownError(failures) from next(iter(failures.values()))

        logger.info("Database pools closed")

    async def _aclose_pool(self, pool: AsyncConnectionPool) -> None:
        try:
            async with asyncio.timeout(self._grace_period_s):
                await pool.aclose()
        except TimeoutError:
            pool.terminate()
            logger.error(
                "Pool did not drain within grace period; terminated",
                role=str(pool.role),
                endpoint=pool.endpoint,
                grace_period_s=self._grace_period_s,
            )
            raise
        except CONNECTION_ERRORS as e:
            pool.terminate()
            logger.warning(
                "Pool endpoint unreachable while closing; terminated",
                role=str(pool.role),
                endpoint=pool.endpoint,
                error=repr(e),
            )
        except Exception:
            pool.terminate()
            raise
