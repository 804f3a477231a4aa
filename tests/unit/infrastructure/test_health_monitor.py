"""HealthMonitor: independent, concurrent, never-throwing probes."""

from __future__ import annotations

import time

from rich.console import Console

from tandem.core.enums import HealthCheckStatus, PoolRole
from tandem.infrastructure.postgres import HealthMonitor, PoolRegistry

console = Console()


class TestHealthMonitor:
    async def test_both_pools_up(self, live_registry: PoolRegistry) -> None:
        report = await HealthMonitor.for_registry(live_registry).aprobe()

        assert report.writable_up
        assert report.readable_up
        assert report.status is HealthCheckStatus.HEALTHY
        assert report.is_healthy
        assert report.writable.role is PoolRole.WRITABLE
        assert report.readable.endpoint == "replica.test:5001"
        assert report.writable.latency_s is not None
        assert report.writable.pool_max_size == 5

    async def test_closed_writable_does_not_mask_readable(self, live_registry: PoolRegistry) -> None:
        await live_registry.writable.aclose()

        report = await HealthMonitor.for_registry(live_registry).aprobe()

        assert report.writable_up is False
        assert report.readable_up is True
        assert report.status is HealthCheckStatus.DEGRADED
        assert report.writable.message == "Pool closed"

    async def test_refused_readable_reports_only_readable_down(self, live_registry: PoolRegistry) -> None:
        live_registry.readable._pool.acquire_error = ConnectionRefusedError("connection refused")

        report = await HealthMonitor.for_registry(live_registry).aprobe()

        assert report.writable_up is True
        assert report.readable_up is False
        assert "PoolUnavailableError" in (report.readable.message or "")

    async def test_both_down_is_unhealthy(self, live_registry: PoolRegistry) -> None:
        live_registry.writable._pool.acquire_error = OSError("network unreachable")
        live_registry.readable._pool.acquire_error = OSError("network unreachable")

        report = await HealthMonitor.for_registry(live_registry).aprobe()

        assert (report.writable_up, report.readable_up) == (False, False)
        assert report.status is HealthCheckStatus.UNHEALTHY

    async def test_unexpected_error_is_contained(self, live_registry: PoolRegistry) -> None:
        live_registry.writable._pool.acquire_error = ValueError("driver bug")

        report = await HealthMonitor.for_registry(live_registry).aprobe()

        assert report.writable_up is False
        assert report.writable.message == "ValueError: driver bug"

    async def test_repeated_probes_are_consistent(self, live_registry: PoolRegistry) -> None:
        live_registry.readable._pool.acquire_error = ConnectionRefusedError("connection refused")
        monitor = HealthMonitor.for_registry(live_registry)

        outcomes = {(r.writable_up, r.readable_up) for r in [await monitor.aprobe() for _ in range(10)]}

        assert outcomes == {(True, False)}

    async def test_hanging_pool_is_bounded_by_connect_timeout(self, live_registry: PoolRegistry) -> None:
        """A checkout that never completes is cut off after connect_timeout_ms (0.5s)."""
        live_registry.writable._pool.acquire_delay = 10.0
        live_registry.readable._pool.acquire_delay = 10.0
        console.print("[bold blue]Probing two hung pools[/bold blue]")

        started = time.perf_counter()
        report = await HealthMonitor.for_registry(live_registry).aprobe()
        elapsed = time.perf_counter() - started

        console.print(f"[green]✓ Probe returned after {elapsed:.3f}s[/green]")
        assert not report.writable_up
        assert not report.readable_up
        assert elapsed < 1.0

    async def test_uninitialized_pools_report_down(self, registry: PoolRegistry) -> None:
        report = await HealthMonitor.for_registry(registry).aprobe()

        assert report.writable.message == "Pool not initialized"
        assert report.readable.message == "Pool not initialized"
        assert report.status is HealthCheckStatus.UNHEALTHY

    async def test_report_serializes_computed_fields(self, live_registry: PoolRegistry) -> None:
        report = await HealthMonitor.for_registry(live_registry).aprobe()

        data = report.model_dump(mode="json")

        assert data["writable_up"] is True
        assert data["status"] == "healthy"
        assert data["writable"]["is_up"] is True
