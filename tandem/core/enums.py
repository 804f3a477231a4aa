from __future__ import annotations

from enum import StrEnum


class HealthCheckStatus(StrEnum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class TlsMode(StrEnum):
    """TLS policy for a pool.

    ``ENABLED_INSECURE`` encrypts the connection but accepts any server
    certificate (no CA validation, no hostname check). It exists for
    private-network deployments that run self-signed certificates.
    """

    DISABLED = "disabled"
    ENABLED_INSECURE = "enabled-insecure"


class PoolRole(StrEnum):
    WRITABLE = "writable"
    READABLE = "readable"


class RegistryState(StrEnum):
    UNINITIALIZED = "uninitialized"
    LIVE = "live"
    CLOSED = "closed"


_READ_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class Intent(StrEnum):
    """What a logical operation does to the database.

    Callers classify themselves; statement text is never inspected.
    """

    READ = "read"
    WRITE = "write"

    @classmethod
    def from_flag(cls, is_write: bool) -> Intent:
        return cls.WRITE if is_write else cls.READ

    @classmethod
    def for_method(cls, method: str) -> Intent:
        return cls.READ if method.upper() in _READ_METHODS else cls.WRITE
