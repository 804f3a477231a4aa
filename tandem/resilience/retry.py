from __future__ import annotations

from collections.abc import Callable, Coroutine
from functools import wraps

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)
from tenacity.retry import retry_base

from ..config.retry import RetryConfig
from ..core.types import P, R
from ..logger import get_logger
from .types import RetryCallback

logger = get_logger(__name__)


class RetryLogicError(RuntimeError): ...


def log_before_sleep(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    error = outcome.exception() if outcome is not None else None
    logger.warning(
        "Retrying after failure",
        function=getattr(retry_state.fn, "__qualname__", None),
        attempt=retry_state.attempt_number,
        sleep_s=round(retry_state.upcoming_sleep, 3),
        error=repr(error),
    )


class Retry:
    """Async retry decorator driven by a `RetryConfig`."""

    def __init__(
        self,
        config: RetryConfig,
        before_sleep: RetryCallback | None = None,
    ) -> None:
        self._config = config
        self._before_sleep = before_sleep or log_before_sleep
        self._stop = stop_after_attempt(config.max_attempts)
        self._wait = wait_random_exponential(
            multiplier=config.multiplier,
            min=config.wait_min,
            max=config.wait_max,
            exp_base=config.exp_base,
        )
        self._retry_condition = self._build_retry_condition(config)

    @staticmethod
    def _build_retry_condition(config: RetryConfig) -> retry_base:
        condition: retry_base = retry_if_exception_type(config.retry_on_exceptions or Exception)
        if config.never_retry_on:
            condition = condition & retry_if_not_exception_type(config.never_retry_on)
        return condition

    def __call__(
        self, func: Callable[P, Coroutine[object, object, R]]
    ) -> Callable[P, Coroutine[object, object, R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            async for attempt in AsyncRetrying(
                stop=self._stop,
                wait=self._wait,
                retry=self._retry_condition,
                before_sleep=self._before_sleep,
                reraise=self._config.reraise,
            ):
                with attempt:
                    return await func(*args, **kwargs)

            raise RetryLogicError("Async retry loop completed without success or failure")

        return wrapper


def retry(config: RetryConfig | None = None, before_sleep: RetryCallback | None = None) -> Retry:
    return Retry(config or RetryConfig(), before_sleep)
