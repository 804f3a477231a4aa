"""FastAPI application factory.

The pool registry is built and torn down by the ASGI lifespan; handlers reach
it only through `tandem.api.deps`.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware

from ..auth import AuthService, DatabaseSessionVerifier, SessionVerifier
from ..config.settings import AppSettings, get_settings
from ..db import await_database_ready
from ..infrastructure.postgres import HealthMonitor, PoolRegistry, ShutdownCoordinator, ShutdownError
from ..logger import bound_context, configure_logging, get_logger
from .errors import register_exception_handlers
from .routes import auth, posts, root, users

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from starlette.responses import Response

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def create_app(
    settings: AppSettings | None = None,
    *,
    registry: PoolRegistry | None = None,
    session_verifier: SessionVerifier | None = None,
) -> FastAPI:
    """Build the application.

    Parameters
    ----------
    settings : AppSettings | None
        Defaults to `get_settings()`.
    registry : PoolRegistry | None
        Pre-built registry. Built from ``settings.database`` when omitted.
        The lifespan initializes and shuts it down either way.
    session_verifier : SessionVerifier | None
        Defaults to `DatabaseSessionVerifier` over the registry.

    Notes
    -----
    If the registry fails to shut down cleanly, the `ShutdownError` is kept on
    ``app.state.shutdown_error`` so the process can exit non-zero.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.logging)
        pool_registry = registry or PoolRegistry(settings.database.to_registry_config())

        await pool_registry.ainitialize()
        try:
            await await_database_ready(pool_registry, settings.startup_retry)
            if pool_registry.config.writable.min_connections or pool_registry.config.readable.min_connections:
                await asyncio.gather(pool_registry.writable.awarmup(), pool_registry.readable.awarmup())

            app.state.registry = pool_registry
            app.state.health_monitor = HealthMonitor.for_registry(pool_registry)
            app.state.session_verifier = session_verifier or DatabaseSessionVerifier(pool_registry)
            app.state.auth_service = AuthService(pool_registry, settings.auth)
            app.state.shutdown_error = None
            logger.info("Service started", environment=settings.environment, version=settings.version)

            yield
        finally:
            coordinator = ShutdownCoordinator(pool_registry)
            try:
                await coordinator.ashutdown()
            except ShutdownError as e:
                app.state.shutdown_error = e
                logger.warning("Service stopped with shutdown failures", failed=sorted(str(role) for role in e.failures))
            else:
                logger.info("Service stopped")

    app = FastAPI(
        title="Demo Backend API",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.shutdown_error = None

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        start = time.perf_counter()
        with bound_context(request_id=request_id, method=request.method, path=request.url.path):
            response = await call_next(request)
            logger.debug(
                "Request handled",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    app.include_router(root.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(posts.router)
    return app
