from __future__ import annotations

from typing import TYPE_CHECKING

from ..config.retry import RetryConfig
from ..infrastructure.postgres import HealthMonitor, HealthReport, PostgresInfraError
from ..logger import get_logger
from ..resilience import retry

if TYPE_CHECKING:
    from ..infrastructure.postgres import PoolRegistry

logger = get_logger(__name__)


class DatabaseNotReadyError(PostgresInfraError):
    """The writable pool did not answer its probe."""


async def await_database_ready(registry: PoolRegistry, config: RetryConfig | None = None) -> HealthReport:
    """Probe until the writable pool answers, backing off between attempts.

    The readable pool is not waited for; if it is down the service starts
    degraded and the health endpoint says so.

    Raises
    ------
    DatabaseNotReadyError
        If the writable pool is still down after the last attempt.
    """
    retry_config = (config or RetryConfig()).model_copy(
        update={"retry_on_exceptions": (DatabaseNotReadyError,), "reraise": True}
    )
    monitor = HealthMonitor.for_registry(registry)

    @retry(retry_config)
    async def _aprobe_writable() -> HealthReport:
        report = await monitor.aprobe()
        if not report.writable_up:
            msg = f"writable pool at {report.writable.endpoint} not ready: {report.writable.message}"
            raise DatabaseNotReadyError(msg)
        return report

    report = await _aprobe_writable()
    if not report.readable_up:
        logger.warning(
            "Readable pool not ready; starting degraded",
            endpoint=report.readable.endpoint,
            error=report.readable.message,
        )
    logger.info("Database ready", status=str(report.status))
    return report
