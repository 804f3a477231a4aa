"""PostgreSQL read/write routing with asyncpg.

This module provides:

- `PoolConfig` / `RegistryConfig`: validated, immutable pool configuration
- `build_pool`: the pool factory (used only by the registry)
- `PoolRegistry`: the writable/readable pair with intent-based `select()`
- `HealthMonitor`: concurrent, non-throwing per-pool probes
- `ShutdownCoordinator`: concurrent, bounded pool shutdown

Usage
-----
::

    config = RegistryConfig.with_readable_endpoint(primary_cfg, "replica.db", 5001)
    async with PoolRegistry(config) as registry:
        rows = await registry.select(Intent.READ).afetch("SELECT * FROM posts")
        async with registry.atransaction() as tx:
            await tx.aexecute("UPDATE posts SET published = true WHERE id = $1", post_id)
        report = await HealthMonitor.for_registry(registry).aprobe()
"""

from .config import PoolConfig, RegistryConfig
from .exceptions import (
    PoolClosedError,
    PoolExhaustedError,
    PoolNotInitializedError,
    PoolUnavailableError,
    PostgresInfraError,
    RegistryClosedError,
    RegistryNotLiveError,
    RegistryStateError,
    RetryablePoolError,
    ShutdownError,
)
from .factory import build_pool
from .health import HealthMonitor, HealthReport, PoolHealth
from .pool import (
    AsyncConnectionPool,
    IsolationLevel,
    PinnedTransaction,
    QueryExecutor,
    ReadablePool,
    WritablePool,
)
from .registry import PoolRegistry
from .shutdown import ShutdownCoordinator

__all__ = [
    "AsyncConnectionPool",
    "HealthMonitor",
    "HealthReport",
    "IsolationLevel",
    "PinnedTransaction",
    "PoolClosedError",
    "PoolConfig",
    "PoolExhaustedError",
    "PoolHealth",
    "PoolNotInitializedError",
    "PoolRegistry",
    "PoolUnavailableError",
    "PostgresInfraError",
    "QueryExecutor",
    "ReadablePool",
    "RegistryClosedError",
    "RegistryConfig",
    "RegistryNotLiveError",
    "RegistryStateError",
    "RetryablePoolError",
    "ShutdownCoordinator",
    "ShutdownError",
    "WritablePool",
    "build_pool",
]
