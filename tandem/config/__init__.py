from __future__ import annotations

from .retry import RetryConfig
from .settings import AppSettings, AuthSettings, DatabaseSettings, get_settings

__all__ = ["AppSettings", "AuthSettings", "DatabaseSettings", "RetryConfig", "get_settings"]
