"""PoolRegistry against a real PostgreSQL: routing, pinning, health and shutdown."""

from __future__ import annotations

import asyncio
import time

import pytest
from rich.console import Console

from tandem.core.enums import HealthCheckStatus, Intent, RegistryState
from tandem.infrastructure.postgres import (
    HealthMonitor,
    PoolConfig,
    PoolExhaustedError,
    PoolRegistry,
    PoolUnavailableError,
    RegistryClosedError,
    RegistryConfig,
    ShutdownCoordinator,
    ShutdownError,
)

console = Console()

pytestmark = [pytest.mark.integration, pytest.mark.database]


class TestRouting:
    async def test_identical_endpoints_still_give_two_pools(self, pg_registry: PoolRegistry) -> None:
        writable = pg_registry.select(Intent.WRITE)
        readable = pg_registry.select(Intent.READ)

        assert writable is not readable
        assert writable.endpoint == readable.endpoint
        assert await writable.afetchval("SELECT 1") == 1
        assert await readable.afetchval("SELECT 1") == 1

    async def test_pools_are_lazy(self, pg_registry: PoolRegistry) -> None:
        """min_connections=0: no connection until the first checkout (the schema ran on writable)."""
        assert pg_registry.readable.pool_size == 0

        await pg_registry.select(Intent.READ).afetchval("SELECT 1")

        assert pg_registry.readable.pool_size == 1

    async def test_write_then_read_on_primary(self, pg_registry: PoolRegistry) -> None:
        writable = pg_registry.select(Intent.WRITE)

        user_id = await writable.afetchval(
            "INSERT INTO users (name, email) VALUES ($1, $2) RETURNING id", "Ada", "ada@example.com"
        )

        assert await writable.afetchval("SELECT name FROM users WHERE id = $1", user_id) == "Ada"


class TestTransactionPinning:
    async def test_every_statement_runs_on_one_backend(self, pg_registry: PoolRegistry) -> None:
        async with pg_registry.atransaction() as tx:
            first_pid = await tx.afetchval("SELECT pg_backend_pid()")
            first_xid = await tx.afetchval("SELECT txid_current()")
            await tx.aexecute("INSERT INTO users (name, email) VALUES ('Ada', 'ada@example.com')")
            second_pid = await tx.afetchval("SELECT pg_backend_pid()")
            second_xid = await tx.afetchval("SELECT txid_current()")
            seen = await tx.afetchval("SELECT count(*) FROM users")

        assert first_pid == second_pid
        assert first_xid == second_xid
        assert seen == 1

    async def test_rollback_discards_writes(self, pg_registry: PoolRegistry) -> None:
        with pytest.raises(RuntimeError):
            async with pg_registry.atransaction() as tx:
                await tx.aexecute("INSERT INTO users (name, email) VALUES ('Ada', 'ada@example.com')")
                raise RuntimeError("abort")

        assert await pg_registry.select(Intent.WRITE).afetchval("SELECT count(*) FROM users") == 0

    async def test_row_lock_serializes_concurrent_transactions(self, pg_registry: PoolRegistry) -> None:
        writable = pg_registry.select(Intent.WRITE)
        author_id = await writable.afetchval(
            "INSERT INTO users (name, email) VALUES ('Ada', 'ada@example.com') RETURNING id"
        )
        post_id = await writable.afetchval(
            "INSERT INTO posts (title, content, author_id) VALUES ('t', 'c', $1) RETURNING id", author_id
        )
        order: list[str] = []

        async def holder() -> None:
            async with pg_registry.atransaction() as tx:
                await tx.afetchval("SELECT author_id FROM posts WHERE id = $1 FOR UPDATE", post_id)
                order.append("holder locked")
                await asyncio.sleep(0.3)
                await tx.aexecute("UPDATE posts SET title = 'first' WHERE id = $1", post_id)
                order.append("holder done")

        async def waiter() -> None:
            await asyncio.sleep(0.1)
            async with pg_registry.atransaction() as tx:
                title = await tx.afetchval("SELECT title FROM posts WHERE id = $1 FOR UPDATE", post_id)
                order.append(f"waiter saw {title}")

        await asyncio.gather(holder(), waiter())

        assert order == ["holder locked", "holder done", "waiter saw first"]


class TestHealth:
    async def test_both_pools_healthy(self, pg_registry: PoolRegistry) -> None:
        report = await HealthMonitor.for_registry(pg_registry).aprobe()

        assert report.status is HealthCheckStatus.HEALTHY
        assert report.writable.latency_s is not None

    async def test_closed_writable_leaves_readable_up(self, pg_registry: PoolRegistry) -> None:
        await pg_registry.writable.aclose()

        report = await HealthMonitor.for_registry(pg_registry).aprobe()

        assert (report.writable_up, report.readable_up) == (False, True)

    async def test_unreachable_replica_reported_down(self, pool_config: PoolConfig) -> None:
        """Readable pool pointed at a closed port: probe fails, writable unaffected."""
        config = RegistryConfig(
            writable=pool_config,
            readable=pool_config.for_endpoint("127.0.0.1", 1),
            shutdown_grace_period_s=2.0,
        )
        console.print("[bold blue]Probing with an unreachable replica[/bold blue]")

        async with PoolRegistry(config) as registry:
            report = await HealthMonitor.for_registry(registry).aprobe()

            assert report.writable_up
            assert not report.readable_up
            with pytest.raises(PoolUnavailableError):
                await registry.select(Intent.READ).afetchval("SELECT 1")

        console.print(f"[green]✓ {report.readable.message}[/green]")


class TestExhaustion:
    async def test_checkout_beyond_max_times_out(self, pool_config: PoolConfig) -> None:
        config = RegistryConfig(
            writable=pool_config.model_copy(update={"max_connections": 1, "connect_timeout_ms": 300}),
            readable=pool_config,
        )

        async with PoolRegistry(config) as registry:
            writable = registry.select(Intent.WRITE)
            async with writable.aacquire():
                with pytest.raises(PoolExhaustedError):
                    await writable.afetchval("SELECT 1")


class TestShutdown:
    async def test_shutdown_releases_every_connection(self, pg_registry: PoolRegistry) -> None:
        await asyncio.gather(
            pg_registry.select(Intent.WRITE).afetchval("SELECT 1"),
            pg_registry.select(Intent.READ).afetchval("SELECT 1"),
        )

        await pg_registry.ashutdown()

        assert pg_registry.state is RegistryState.CLOSED
        assert pg_registry.writable.pool_size == 0
        assert pg_registry.readable.pool_size == 0
        with pytest.raises(RegistryClosedError):
            pg_registry.select(Intent.WRITE)

    async def test_in_flight_work_finishes_within_grace_period(self, pg_registry: PoolRegistry) -> None:
        async def slow_query() -> int:
            return await pg_registry.select(Intent.READ).afetchval("SELECT 42 FROM pg_sleep(0.3)")

        task = asyncio.create_task(slow_query())
        await asyncio.sleep(0.1)
        await ShutdownCoordinator(pg_registry, grace_period_s=5.0).ashutdown()

        assert await task == 42

    async def test_stuck_connection_is_terminated_after_grace_period(self, pg_registry: PoolRegistry) -> None:
        held = asyncio.Event()
        release = asyncio.Event()

        async def hold_connection() -> None:
            async with pg_registry.select(Intent.WRITE).aacquire():
                held.set()
                await release.wait()

        task = asyncio.create_task(hold_connection())
        await held.wait()

        started = time.perf_counter()
        with pytest.raises(ShutdownError) as exc_info:
            await ShutdownCoordinator(pg_registry, grace_period_s=0.3).ashutdown()
        elapsed = time.perf_counter() - started

        release.set()
        await asyncio.gather(task, return_exceptions=True)

        assert elapsed < 2.0
        assert set(exc_info.value.failures) == {"writable"}
        assert pg_registry.writable.pool_size == 0
