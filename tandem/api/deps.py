"""Request-scoped dependencies.

Handlers declare their intent by the pool dependency they take:
``ReadPoolDep`` for standalone reads, ``WritePoolDep`` for single writes,
``RegistryDep`` when they need ``registry.atransaction()``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from ..auth import AuthService, Credentials, SessionVerifier
from ..config.settings import AppSettings
from ..core.enums import Intent
from ..infrastructure.postgres import HealthMonitor, PoolRegistry, ReadablePool, WritablePool
from ..models import Principal


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_registry(request: Request) -> PoolRegistry:
    return request.app.state.registry


def get_health_monitor(request: Request) -> HealthMonitor:
    return request.app.state.health_monitor


def get_session_verifier(request: Request) -> SessionVerifier:
    return request.app.state.session_verifier


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


SettingsDep = Annotated[AppSettings, Depends(get_settings)]
RegistryDep = Annotated[PoolRegistry, Depends(get_registry)]
HealthMonitorDep = Annotated[HealthMonitor, Depends(get_health_monitor)]
SessionVerifierDep = Annotated[SessionVerifier, Depends(get_session_verifier)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def get_read_pool(registry: RegistryDep) -> ReadablePool:
    return registry.select(Intent.READ)


def get_write_pool(registry: RegistryDep) -> WritablePool:
    return registry.select(Intent.WRITE)


ReadPoolDep = Annotated[ReadablePool, Depends(get_read_pool)]
WritePoolDep = Annotated[WritablePool, Depends(get_write_pool)]


def get_credentials(request: Request, settings: SettingsDep) -> Credentials:
    return Credentials.from_request(request.headers, request.cookies, settings.auth.cookie_name)


CredentialsDep = Annotated[Credentials, Depends(get_credentials)]


async def get_current_principal(credentials: CredentialsDep, verifier: SessionVerifierDep) -> Principal:
    principal = await verifier.averify(credentials)
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
