from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ...core.enums import PoolRole, RegistryState


class PostgresInfraError(Exception):
    """Base class for pool and registry errors."""

    retryable: bool = False


class PoolNotInitializedError(PostgresInfraError):
    """The pool was used before `ainitialize()`."""


class PoolClosedError(PostgresInfraError):
    """The pool was used after it was closed."""


class RegistryStateError(PostgresInfraError):
    """The registry is not in the state an operation requires."""

    def __init__(self, message: str, state: RegistryState) -> None:
        super().__init__(message)
        self.state = state


class RegistryNotLiveError(RegistryStateError):
    """`select()` or `atransaction()` before `ainitialize()`."""


class RegistryClosedError(RegistryStateError):
    """The registry has been shut down; no pool can be handed out."""


class RetryablePoolError(PostgresInfraError):
    """Transient failure at connection checkout. Safe for the caller to retry."""

    retryable = True

    def __init__(self, message: str, endpoint: str) -> None:
        super().__init__(message)
        self.endpoint = endpoint


class PoolExhaustedError(RetryablePoolError):
    """No connection became available within the acquire timeout."""


class PoolUnavailableError(RetryablePoolError):
    """The pool's endpoint refused or dropped the connection."""


class ShutdownError(PostgresInfraError):
    """One or both pools failed to close cleanly within the grace period."""

    def __init__(self, failures: Mapping[PoolRole, BaseException]) -> None:
        self.failures = dict(failures)
        detail = "; ".join(f"{role}: {error!r}" for role, error in self.failures.items())
        super().__init__(f"{len(self.failures)} pool(s) failed to shut down cleanly ({detail})")
