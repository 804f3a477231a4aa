"""Per-pool health probing for the writable/readable pair.

The monitor never raises: each pool is probed independently and a failure
only marks that pool down.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Self

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ...core.enums import HealthCheckStatus, PoolRole
from ...logger import get_logger

if TYPE_CHECKING:
    from .pool import AsyncConnectionPool
    from .registry import PoolRegistry

logger = get_logger(__name__)


class PoolHealth(BaseModel):
    """Result of probing one pool."""

    model_config = ConfigDict(frozen=True)

    role: PoolRole
    endpoint: str
    status: HealthCheckStatus
    pool_size: int = 0
    pool_idle_size: int = 0
    pool_max_size: int
    latency_s: float | None = None
    message: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_up(self) -> bool:
        return self.status == HealthCheckStatus.HEALTHY

    @classmethod
    def healthy(
        cls: type[Self],
        *,
        role: PoolRole,
        endpoint: str,
        latency_s: float,
        pool_size: int,
        pool_idle_size: int,
        pool_max_size: int,
    ) -> Self:
        return cls(
            role=role,
            endpoint=endpoint,
            status=HealthCheckStatus.HEALTHY,
            pool_size=pool_size,
            pool_idle_size=pool_idle_size,
            pool_max_size=pool_max_size,
            latency_s=latency_s,
            message="Pool is healthy",
        )

    @classmethod
    def unhealthy(cls: type[Self], *, role: PoolRole, endpoint: str, pool_max_size: int, error: str) -> Self:
        return cls(
            role=role,
            endpoint=endpoint,
            status=HealthCheckStatus.UNHEALTHY,
            pool_max_size=pool_max_size,
            message=error,
        )


class HealthReport(BaseModel):
    """Health of both pools at one instant. Both fields are always populated."""

    model_config = ConfigDict(frozen=True)

    writable: PoolHealth
    readable: PoolHealth
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def writable_up(self) -> bool:
        return self.writable.is_up

    @computed_field  # type: ignore[prop-decorator]
    @property
    def readable_up(self) -> bool:
        return self.readable.is_up

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> HealthCheckStatus:
        if self.writable_up and self.readable_up:
            return HealthCheckStatus.HEALTHY
        if self.writable_up or self.readable_up:
            return HealthCheckStatus.DEGRADED
        return HealthCheckStatus.UNHEALTHY

    @property
    def is_healthy(self) -> bool:
        return self.status == HealthCheckStatus.HEALTHY


class HealthMonitor:
    """Probes the writable and readable pools concurrently.

    Examples
    --------
    >>> monitor = HealthMonitor.for_registry(registry)
    >>> report = await monitor.aprobe()
    >>> report.writable_up, report.readable_up
    (True, False)
    """

    __slots__ = ("_readable", "_writable")

    def __init__(self, writable: AsyncConnectionPool, readable: AsyncConnectionPool) -> None:
        self._writable = writable
        self._readable = readable

    @classmethod
    def for_registry(cls, registry: PoolRegistry) -> Self:
        return cls(registry.writable, registry.readable)

    async def aprobe(self) -> HealthReport:
        """Run one ``SELECT 1`` round trip per pool, concurrently.

        Returns
        -------
        HealthReport
            Fresh report. Never cached, never partially populated.
        """
        writable, readable = await asyncio.gather(self._writable.aprobe(), self._readable.aprobe())

        report = HealthReport(writable=writable, readable=readable)
        for health in (writable, readable):
            if not health.is_up:
                logger.warning(
                    "Pool probe failed",
                    role=str(health.role),
                    endpoint=health.endpoint,
                    error=health.message,
                )
        logger.debug(
            "Pool probe completed",
            status=str(report.status),
            writable_up=report.writable_up,
            readable_up=report.readable_up,
        )
        return report
