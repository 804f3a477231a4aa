"""Configuration models for the writable/readable pool pair.

- `PoolConfig`: one asyncpg pool against one endpoint
- `RegistryConfig`: the writable + readable pair owned by `PoolRegistry`
"""

from __future__ import annotations

import ssl
from typing import Any, Self
from urllib.parse import quote_plus

from pydantic import BaseModel, ConfigDict, Field, SecretStr, computed_field, model_validator

from ...core.enums import TlsMode


class PoolConfig(BaseModel):
    """Immutable configuration for a single connection pool.

    Examples
    --------
    >>> config = PoolConfig(
    ...     host="10.100.0.20",
    ...     port=5000,
    ...     database="demo_db",
    ...     password=SecretStr("secret"),
    ...     max_connections=20,
    ... )
    >>> config.endpoint
    '10.100.0.20:5000'
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = Field(default="localhost", min_length=1)
    port: int = Field(default=5432, ge=1, le=65535)
    database: str = Field(default="demo_db", min_length=1)
    user: str = Field(default="postgres", min_length=1)
    password: SecretStr = Field(default=SecretStr(""))

    max_connections: int = Field(default=20, ge=1, le=1000)
    min_connections: int = Field(default=0, ge=0, le=1000)
    idle_timeout_ms: int = Field(default=30_000, ge=0)
    connect_timeout_ms: int = Field(default=5_000, ge=1)
    command_timeout_ms: int | None = Field(default=None, ge=1)

    tls_mode: TlsMode = Field(default=TlsMode.DISABLED)
    application_name: str = Field(default="tandem")

    @model_validator(mode="after")
    def _check_pool_bounds(self) -> Self:
        if self.min_connections > self.max_connections:
            msg = f"min_connections ({self.min_connections}) exceeds max_connections ({self.max_connections})"
            raise ValueError(msg)
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def dsn(self) -> str:
        """PostgreSQL DSN. Contains the password: never log it."""
        password = self.password.get_secret_value()
        escaped_user = quote_plus(self.user)
        auth = f"{escaped_user}:{quote_plus(password)}@" if password else f"{escaped_user}@"
        return f"postgresql://{auth}{self.host}:{self.port}/{self.database}"

    @property
    def connect_timeout_s(self) -> float:
        return self.connect_timeout_ms / 1000

    def ssl_context(self) -> ssl.SSLContext | bool:
        """Build the asyncpg ``ssl`` argument for this config.

        ``ENABLED_INSECURE`` turns off certificate and hostname verification.
        """
        if self.tls_mode is TlsMode.DISABLED:
            return False

        context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context

    def to_pool_params(self) -> dict[str, Any]:
        """Convert to ``asyncpg.create_pool()`` keyword arguments."""
        return {
            "dsn": self.dsn,
            "min_size": self.min_connections,
            "max_size": self.max_connections,
            "max_inactive_connection_lifetime": self.idle_timeout_ms / 1000,
            "command_timeout": self.command_timeout_ms / 1000 if self.command_timeout_ms else None,
            "timeout": self.connect_timeout_s,
            "ssl": self.ssl_context(),
            "server_settings": {"application_name": self.application_name},
        }

    def to_log_fields(self) -> dict[str, Any]:
        """Loggable subset of the config (no credentials)."""
        return {
            "endpoint": self.endpoint,
            "database": self.database,
            "user": self.user,
            "max_connections": self.max_connections,
            "min_connections": self.min_connections,
            "idle_timeout_ms": self.idle_timeout_ms,
            "connect_timeout_ms": self.connect_timeout_ms,
            "tls_mode": str(self.tls_mode),
        }

    def for_endpoint(self, host: str, port: int | None = None) -> Self:
        """Copy this config, pointing it at another endpoint.

        The readable side usually shares database, credentials and pool
        settings with the writable side; only host and port differ.
        """
        return self.model_copy(update={"host": host, "port": port if port is not None else self.port})


class RegistryConfig(BaseModel):
    """Configuration for the writable/readable pool pair.

    Both pools must serve the same logical database.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    writable: PoolConfig
    readable: PoolConfig
    shutdown_grace_period_s: float = Field(default=10.0, gt=0, le=300)

    @model_validator(mode="after")
    def _check_same_database(self) -> Self:
        if self.writable.database != self.readable.database:
            msg = (
                "writable and readable pools must target the same database "
                f"(got {self.writable.database!r} and {self.readable.database!r})"
            )
            raise ValueError(msg)
        return self

    @classmethod
    def with_readable_endpoint(
        cls,
        writable: PoolConfig,
        host: str,
        port: int | None = None,
        *,
        shutdown_grace_period_s: float = 10.0,
    ) -> Self:
        """Derive the readable config from the writable one.

        Examples
        --------
        >>> config = RegistryConfig.with_readable_endpoint(primary_cfg, "10.100.0.20", 5001)
        """
        return cls(
            writable=writable,
            readable=writable.for_endpoint(host, port),
            shutdown_grace_period_s=shutdown_grace_period_s,
        )
