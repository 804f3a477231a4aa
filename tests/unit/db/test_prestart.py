from __future__ import annotations

import pytest

from tandem.config.retry import RetryConfig
from tandem.db import DatabaseNotReadyError, aapply_schema, await_database_ready
from tandem.db.schema import SCHEMA_STATEMENTS
from tandem.infrastructure.postgres import PoolRegistry


@pytest.fixture
def fast_retry() -> RetryConfig:
    return RetryConfig(max_attempts=3, wait_min=0.0, wait_max=0.01)


class TestAwaitDatabaseReady:
    async def test_returns_report_when_primary_answers(self, live_registry: PoolRegistry, fast_retry: RetryConfig) -> None:
        report = await await_database_ready(live_registry, fast_retry)

        assert report.writable_up
        assert report.readable_up

    async def test_starts_degraded_when_only_replica_is_down(
        self, live_registry: PoolRegistry, fast_retry: RetryConfig
    ) -> None:
        live_registry.readable._pool.acquire_error = ConnectionRefusedError("connection refused")

        report = await await_database_ready(live_registry, fast_retry)

        assert report.writable_up
        assert not report.readable_up

    async def test_waits_for_primary_to_come_up(self, live_registry: PoolRegistry, fast_retry: RetryConfig) -> None:
        writable = live_registry.writable._pool
        writable.acquire_error = ConnectionRefusedError("connection refused")
        attempts = 0
        original_acquire = writable.acquire

        async def recovering_acquire(*, timeout: float | None = None):  # noqa: ANN202
            nonlocal attempts
            attempts += 1
            if attempts == 2:
                writable.acquire_error = None
            return await original_acquire(timeout=timeout)

        writable.acquire = recovering_acquire  # type: ignore[method-assign]

        report = await await_database_ready(live_registry, fast_retry)

        assert report.writable_up
        assert attempts == 2

    async def test_gives_up_after_last_attempt(self, live_registry: PoolRegistry, fast_retry: RetryConfig) -> None:
        live_registry.writable._pool.acquire_error = ConnectionRefusedError("connection refused")

        with pytest.raises(DatabaseNotReadyError, match="primary.test:5000"):
            await await_database_ready(live_registry, fast_retry)


class TestApplySchema:
    async def test_schema_runs_in_one_writable_transaction(self, live_registry: PoolRegistry) -> None:
        writable = live_registry.writable._pool
        readable = live_registry.readable._pool

        await aapply_schema(live_registry)

        assert len(writable.statements) == len(SCHEMA_STATEMENTS)
        assert len({connection_id for connection_id, _, _ in writable.statements}) == 1
        assert [event for event, _, _ in writable.events] == ["begin", "commit"]
        assert readable.statements == []

    def test_schema_covers_every_table(self) -> None:
        ddl = "\n".join(SCHEMA_STATEMENTS)

        for table in ("users", "accounts", "sessions", "posts"):
            assert f"CREATE TABLE IF NOT EXISTS {table}" in ddl
        assert "ON DELETE CASCADE" in ddl
