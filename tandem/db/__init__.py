from __future__ import annotations

from .prestart import DatabaseNotReadyError, await_database_ready
from .schema import SCHEMA_STATEMENTS, aapply_schema

__all__ = ["SCHEMA_STATEMENTS", "DatabaseNotReadyError", "aapply_schema", "await_database_ready"]
