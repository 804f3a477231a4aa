"""Environment-driven settings for the service.

Variable names and defaults match the deployment this service grew out of
(``DB_PRIMARY_HOST``, ``DB_REPLICA_PORT``, ``CORS_ORIGIN``, ...).
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.enums import TlsMode
from ..infrastructure.postgres.config import PoolConfig, RegistryConfig
from ..logger import LoggingConfig
from .retry import RetryConfig


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="DB_", extra="ignore", frozen=True)

    primary_host: str = Field(default="10.100.0.20", description="Writable (primary) host")
    primary_port: int = Field(default=5000, ge=1, le=65535, description="Writable (primary) port")
    replica_host: str = Field(default="10.100.0.20", description="Readable (replica) host")
    replica_port: int = Field(default=5001, ge=1, le=65535, description="Readable (replica) port")
    name: str = Field(default="demo_db", description="Database name (shared by both pools)")
    user: str = Field(default="postgres", description="Database user")
    password: SecretStr = Field(default=SecretStr(""), description="Database password")
    ssl_enabled: bool = Field(default=False, description="TLS without certificate verification")

    pool_max: int = Field(default=20, ge=1, le=1000, description="Max connections per pool")
    pool_min: int = Field(default=0, ge=0, le=1000, description="Connections opened eagerly per pool")
    idle_timeout_ms: int = Field(default=30_000, ge=0, description="Idle connection lifetime")
    connect_timeout_ms: int = Field(default=5_000, ge=1, description="Connect / checkout timeout")
    shutdown_grace_period_s: float = Field(default=10.0, gt=0, le=300, description="Drain time on shutdown")

    def _pool_config(self, host: str, port: int) -> PoolConfig:
        return PoolConfig(
            host=host,
            port=port,
            database=self.name,
            user=self.user,
            password=self.password,
            max_connections=self.pool_max,
            min_connections=self.pool_min,
            idle_timeout_ms=self.idle_timeout_ms,
            connect_timeout_ms=self.connect_timeout_ms,
            tls_mode=TlsMode.ENABLED_INSECURE if self.ssl_enabled else TlsMode.DISABLED,
        )

    def to_registry_config(self) -> RegistryConfig:
        return RegistryConfig(
            writable=self._pool_config(self.primary_host, self.primary_port),
            readable=self._pool_config(self.replica_host, self.replica_port),
            shutdown_grace_period_s=self.shutdown_grace_period_s,
        )


class AuthSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="AUTH_", extra="ignore", frozen=True)

    session_ttl_s: int = Field(default=60 * 60 * 24 * 7, ge=60, description="Session lifetime (7 days)")
    cookie_prefix: str = Field(default="demo", min_length=1)
    secure_cookies: bool = Field(default=False, description="Mark the session cookie Secure")
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    @property
    def cookie_name(self) -> str:
        return f"{self.cookie_prefix}.session_token"


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    host: str = Field(default="0.0.0.0")  # noqa: S104
    port: int = Field(default=3000, ge=1, le=65535)
    environment: Literal["development", "test", "production"] = Field(default="development")
    cors_origin: str = Field(default="*", description="Comma separated origins, or *")
    version: str = Field(default="1.0.0")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    startup_retry: RetryConfig = Field(default_factory=RetryConfig)

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origin.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()
