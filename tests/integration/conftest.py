"""Shared fixtures for integration tests against a real PostgreSQL.

One container plays both roles: the registry's writable and readable pools
point at the same endpoint, which still yields two distinct pools.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio
from docker import from_env  # type: ignore[import-untyped]
from docker.errors import DockerException  # type: ignore[import-untyped]
from pydantic import SecretStr
from testcontainers.postgres import PostgresContainer  # type: ignore[import-untyped]

from tandem.db import aapply_schema
from tandem.infrastructure.postgres import PoolConfig, PoolRegistry, RegistryConfig

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator


def pytest_configure(config: pytest.Config) -> None:  # noqa: ARG001
    """Point testcontainers at the local Docker socket before any fixture runs."""
    if not os.environ.get("DOCKER_HOST"):
        possible_sockets = [
            Path("/var/run/docker.sock"),
            Path.home() / ".docker" / "run" / "docker.sock",
        ]
        for socket_path in possible_sockets:
            if socket_path.exists():
                os.environ["DOCKER_HOST"] = f"unix://{socket_path}"
                os.environ["TESTCONTAINERS_DOCKER_SOCKET_OVERRIDE"] = str(socket_path)
                break

    # Ryuk (testcontainers cleanup daemon) has known issues on macOS/Docker Desktop
    if sys.platform == "darwin" and not os.environ.get("TESTCONTAINERS_RYUK_DISABLED"):
        os.environ["TESTCONTAINERS_RYUK_DISABLED"] = "true"


def _is_docker_available() -> bool:
    """Check if Docker daemon is accessible.

    Returns
    -------
    bool
        True if Docker daemon responds to ping, False otherwise.
    """
    try:
        client = from_env()
        client.ping()
    except (ImportError, DockerException):
        return False
    else:
        return True


@pytest.fixture(scope="session")
def postgres_container() -> Iterator[PostgresContainer]:
    """Provide session-scoped PostgreSQL container.

    Yields
    ------
    PostgresContainer
        Running PostgreSQL container instance.
    """
    if not _is_docker_available():
        pytest.skip("Docker daemon not accessible")

    with PostgresContainer("postgres:17-alpine", driver="asyncpg") as container:
        yield container


@pytest.fixture
def pool_config(postgres_container: PostgresContainer) -> PoolConfig:
    return PoolConfig(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database=postgres_container.dbname,
        user=postgres_container.username,
        password=SecretStr(postgres_container.password),
        max_connections=5,
        connect_timeout_ms=2_000,
        application_name="tandem_test",
    )


@pytest.fixture
def registry_config(pool_config: PoolConfig) -> RegistryConfig:
    return RegistryConfig(writable=pool_config, readable=pool_config, shutdown_grace_period_s=5.0)


@pytest_asyncio.fixture
async def pg_registry(registry_config: RegistryConfig) -> AsyncIterator[PoolRegistry]:
    """Live registry over the container with the schema applied and tables emptied.

    Yields
    ------
    PoolRegistry
        Registry in the ``LIVE`` state. Shut down after the test unless the
        test already did.
    """
    registry = PoolRegistry(registry_config)
    await registry.ainitialize()
    await aapply_schema(registry)
    async with registry.atransaction() as tx:
        await tx.aexecute("TRUNCATE TABLE posts, sessions, accounts, users CASCADE")

    yield registry

    if registry.state != "closed":
        await registry.ashutdown()
