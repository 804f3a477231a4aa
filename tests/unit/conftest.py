"""In-memory stand-ins for asyncpg pools.

`asyncpg.create_pool` is patched to hand out a `FakeAsyncpgPool` per call, so
registry, health and shutdown behavior can be driven without a server.
Tests reach the fake behind a handle through ``handle._pool``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import asyncpg
import pytest
from pydantic import SecretStr

from tandem.infrastructure.postgres import PoolConfig, PoolRegistry, RegistryConfig

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class FakeTransaction:
    def __init__(self, connection: FakeConnection, options: dict[str, Any]) -> None:
        self._connection = connection
        self._options = options

    async def __aenter__(self) -> FakeTransaction:
        self._connection.pool.events.append(("begin", self._connection.id, self._options))
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: object) -> bool:
        outcome = "rollback" if exc_type is not None else "commit"
        self._connection.pool.events.append((outcome, self._connection.id, {}))
        return False


class FakeConnection:
    def __init__(self, pool: FakeAsyncpgPool, connection_id: int) -> None:
        self.pool = pool
        self.id = connection_id

    def _record(self, query: str, args: tuple[object, ...]) -> None:
        self.pool.statements.append((self.id, " ".join(query.split()), args))

    async def execute(self, query: str, *args: object, timeout: float | None = None) -> str:
        self._record(query, args)
        return "OK"

    async def fetch(self, query: str, *args: object, timeout: float | None = None) -> list[dict[str, Any]]:
        self._record(query, args)
        return list(self.pool.fetch_result)

    async def fetchrow(self, query: str, *args: object, timeout: float | None = None) -> dict[str, Any] | None:
        self._record(query, args)
        return self.pool.fetchrow_result

    async def fetchval(self, query: str, *args: object, timeout: float | None = None) -> Any:
        self._record(query, args)
        if query == "SELECT 1":
            return 1
        return self.pool.fetchval_result

    def transaction(self, **options: Any) -> FakeTransaction:
        return FakeTransaction(self, options)


@dataclass
class FakeAsyncpgPool:
    """Just enough of `asyncpg.Pool` for the handles in `tandem`."""

    params: dict[str, Any]
    max_size: int = 20
    acquire_error: BaseException | None = None
    acquire_delay: float = 0.0
    close_delay: float = 0.0
    close_error: BaseException | None = None
    fetch_result: list[dict[str, Any]] = field(default_factory=list)
    fetchrow_result: dict[str, Any] | None = None
    fetchval_result: Any = None

    statements: list[tuple[int, str, tuple[object, ...]]] = field(default_factory=list)
    events: list[tuple[str, int, dict[str, Any]]] = field(default_factory=list)
    acquisitions: int = 0
    opened: int = 0
    checked_out: int = 0
    closed: bool = False
    terminated: bool = False
    close_calls: int = 0

    async def acquire(self, *, timeout: float | None = None) -> FakeConnection:
        if self.acquire_delay:
            await asyncio.sleep(self.acquire_delay)
        if self.acquire_error is not None:
            raise self.acquire_error
        self.opened = max(self.opened, self.checked_out + 1)
        self.checked_out += 1
        self.acquisitions += 1
        return FakeConnection(self, self.acquisitions)

    async def release(self, connection: FakeConnection) -> None:
        self.checked_out -= 1

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_delay:
            await asyncio.sleep(self.close_delay)
        if self.close_error is not None:
            raise self.close_error
        self.closed = True

    def terminate(self) -> None:
        self.terminated = True

    def get_size(self) -> int:
        return 0 if self.closed or self.terminated else self.opened

    def get_idle_size(self) -> int:
        return 0 if self.closed or self.terminated else self.opened - self.checked_out

    def get_max_size(self) -> int:
        return self.max_size


@pytest.fixture
def created_pools(monkeypatch: pytest.MonkeyPatch) -> list[FakeAsyncpgPool]:
    """Patch `asyncpg.create_pool`; every pool it creates is appended here."""
    pools: list[FakeAsyncpgPool] = []

    async def fake_create_pool(**params: Any) -> FakeAsyncpgPool:
        pool = FakeAsyncpgPool(params=params, max_size=params["max_size"])
        pools.append(pool)
        return pool

    monkeypatch.setattr(asyncpg, "create_pool", fake_create_pool)
    return pools


@pytest.fixture
def writable_config() -> PoolConfig:
    return PoolConfig(
        host="primary.test",
        port=5000,
        database="demo_db",
        user="app",
        password=SecretStr("s3cret"),
        max_connections=5,
        connect_timeout_ms=500,
    )


@pytest.fixture
def registry_config(writable_config: PoolConfig) -> RegistryConfig:
    return RegistryConfig.with_readable_endpoint(writable_config, "replica.test", 5001, shutdown_grace_period_s=1.0)


@pytest.fixture
def registry(registry_config: RegistryConfig, created_pools: list[FakeAsyncpgPool]) -> PoolRegistry:
    """Uninitialized registry over fake pools."""
    return PoolRegistry(registry_config)


@pytest.fixture
async def live_registry(registry: PoolRegistry) -> AsyncIterator[PoolRegistry]:
    await registry.ainitialize()
    yield registry
    if registry.state != "closed":
        await registry.ashutdown()

