from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RetryConfig(BaseModel):
    """Exponential backoff with full jitter.

    See: https://aws.amazon.com/blogs/architecture/exponential-backoff-and-jitter/
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_attempts: int = Field(default=10, ge=1, description="Maximum attempts, including the first")
    wait_min: float = Field(default=0.5, ge=0, description="Minimum wait between attempts (seconds)")
    wait_max: float = Field(default=5.0, ge=0, description="Maximum wait between attempts (seconds)")
    multiplier: float = Field(default=1.0, ge=0, description="Wait multiplier")
    exp_base: float = Field(default=2.0, ge=1, description="Exponential base")

    retry_on_exceptions: tuple[type[Exception], ...] | None = Field(
        default=None,
        description="Exception types that trigger a retry (None = any Exception)",
    )
    never_retry_on: tuple[type[Exception], ...] | None = Field(
        default=None,
        description="Exception types never retried (wins over retry_on_exceptions)",
    )
    reraise: bool = Field(default=True, description="Reraise the last exception once attempts run out")
