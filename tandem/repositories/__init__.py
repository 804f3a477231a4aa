"""SQL for each table. Every function takes the executor it runs on.

The caller picks the executor: `registry.select(intent)` for single
statements, or a `PinnedTransaction` for multi-statement work.
"""

from __future__ import annotations

from .errors import DuplicateEmailError, RepositoryError

__all__ = ["DuplicateEmailError", "RepositoryError"]
