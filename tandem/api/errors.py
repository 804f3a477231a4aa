"""Exception handlers: every error leaves as the standard JSON envelope."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..auth import InvalidCredentialsError
from ..infrastructure.postgres import PoolClosedError, PoolNotInitializedError, RegistryStateError, RetryablePoolError
from ..logger import get_logger
from ..repositories import RepositoryError

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = get_logger(__name__)

RETRY_AFTER_S = 1


def _envelope(status_code: int, message: str, *, error: str | None = None, headers: dict[str, str] | None = None) -> JSONResponse:
    content: dict[str, object] = {"success": False, "message": message}
    if error is not None:
        content["error"] = error
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _envelope(exc.status_code, str(exc.detail), headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """400 with a readable summary instead of the raw pydantic error list."""
    messages = []
    for err in exc.errors():
        loc = " -> ".join(str(part) for part in err.get("loc", []) if part != "body")
        msg = err.get("msg", "Invalid value")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return _envelope(status.HTTP_400_BAD_REQUEST, "Validation error", error="; ".join(messages))


async def repository_exception_handler(request: Request, exc: RepositoryError) -> JSONResponse:
    return _envelope(status.HTTP_400_BAD_REQUEST, str(exc))


async def invalid_credentials_handler(request: Request, exc: InvalidCredentialsError) -> JSONResponse:
    return _envelope(status.HTTP_401_UNAUTHORIZED, str(exc))


async def retryable_pool_exception_handler(request: Request, exc: RetryablePoolError) -> JSONResponse:
    logger.warning(
        "Database checkout failed",
        method=request.method,
        path=request.url.path,
        endpoint=exc.endpoint,
        error=str(exc),
    )
    return _envelope(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Database temporarily unavailable, retry shortly",
        error=type(exc).__name__,
        headers={"Retry-After": str(RETRY_AFTER_S)},
    )


async def registry_state_exception_handler(request: Request, exc: RegistryStateError) -> JSONResponse:
    logger.warning("Request refused, pool registry not live", state=str(exc.state), path=request.url.path)
    return _envelope(status.HTTP_503_SERVICE_UNAVAILABLE, "Service is not accepting database work")


async def pool_state_exception_handler(request: Request, exc: PoolClosedError | PoolNotInitializedError) -> JSONResponse:
    # A pool selected just before shutdown and used while it drains.
    logger.warning("Request refused, pool not open", error=str(exc), path=request.url.path)
    return _envelope(status.HTTP_503_SERVICE_UNAVAILABLE, "Service is not accepting database work")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception", method=request.method, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal error", "message": "An error occurred"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RepositoryError, repository_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(InvalidCredentialsError, invalid_credentials_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RetryablePoolError, retryable_pool_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RegistryStateError, registry_state_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PoolClosedError, pool_state_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PoolNotInitializedError, pool_state_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
