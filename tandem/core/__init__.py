"""Core module exports."""

from __future__ import annotations

from .enums import HealthCheckStatus, Intent, PoolRole, RegistryState, TlsMode

__all__ = [
    "HealthCheckStatus",
    "Intent",
    "PoolRole",
    "RegistryState",
    "TlsMode",
]
