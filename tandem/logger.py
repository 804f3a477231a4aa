"""structlog setup shared by the API, the CLI and the pool layer.

Every module logs through ``get_logger(__name__)`` with key-value events.
Call ``configure_logging`` once per process (the app lifespan and the CLI
do); before that, structlog's defaults apply.
"""

from __future__ import annotations

import logging
import sys
from functools import lru_cache
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, cast

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from structlog.processors import CallsiteParameter

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

    from structlog.types import EventDict, Processor, WrappedLogger

type BoundLogger = structlog.stdlib.BoundLogger
type LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"]

REDACTED = "***"
SECRET_KEYS: frozenset[str] = frozenset({"password", "dsn", "token", "authorization", "cookie", "password_hash"})


class LoggingConfig(BaseSettings):
    """Logging settings, read from ``LOG_*`` environment variables.

    Attributes
    ----------
    json_output : bool
        One JSON object per line instead of the colored console renderer.
    file_path : str | None
        Write to a size-rotated file instead of stdout.
    library_log_levels : dict[str, LogLevel]
        Per-logger overrides for chatty dependencies.
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="LOG_", extra="ignore", frozen=True)

    level: LogLevel = Field(default="INFO")
    json_output: bool = Field(default=False)
    service_name: str = Field(default="tandem")
    file_path: str | None = Field(default=None)
    max_bytes: int = Field(default=50_000_000, ge=1024)
    backup_count: int = Field(default=10, ge=0)
    library_log_levels: dict[str, LogLevel] = Field(
        default_factory=lambda: {"asyncpg": "WARNING", "uvicorn.access": "WARNING"}
    )


def redact_secrets(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """Mask values whose key names a credential, at any nesting depth of dicts."""
    return cast("EventDict", _redact(event_dict))


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: REDACTED if str(key).lower() in SECRET_KEYS else _redact(item) for key, item in value.items()}
    return value


def _processors(config: LoggingConfig) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.CallsiteParameterAdder(parameters=[CallsiteParameter.MODULE, CallsiteParameter.LINENO]),
        redact_secrets,
    ]
    if config.json_output:
        return [
            *processors,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    return [
        *processors,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.dev.ConsoleRenderer(),
    ]


def _handler(config: LoggingConfig) -> logging.Handler:
    handler: logging.Handler
    if config.file_path:
        log_path = Path(config.file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler(sys.stdout)

    handler.setLevel(config.level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Route structlog and stdlib logging (uvicorn, asyncpg) to one handler."""
    config = config if config is not None else _default_config()

    structlog.configure(
        processors=_processors(config),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers = [_handler(config)]
    root.setLevel(config.level)

    # uvicorn installs its own handlers unless told otherwise; send them to root.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True

    for lib_name, lib_level in config.library_log_levels.items():
        logging.getLogger(lib_name).setLevel(lib_level)

    structlog.contextvars.bind_contextvars(service=config.service_name)


@lru_cache(maxsize=1)
def _default_config() -> LoggingConfig:
    return LoggingConfig()


def get_logger(name: str | None = None) -> BoundLogger:
    return cast("BoundLogger", structlog.get_logger(name))


def bound_context(**kwargs: str | float | bool | None) -> AbstractContextManager[None]:
    """Bind key-values to every log event emitted inside the block."""
    return structlog.contextvars.bound_contextvars(**kwargs)
