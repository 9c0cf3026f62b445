"""Retry policy configuration.

A RetryPolicy bounds how many times a failed request is re-issued and how
long to wait in between. It is resolved once at client construction and
shared read-only by every call.

Optimizations:
- Frozen for immutability and hashability
- Pre-computed disabled state
"""

from __future__ import annotations

from typing import Annotated, Callable

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .backoff import Backoff, ConstantBackoff

# (retry_num, exception, interval) -> None
RetryCallback = Callable[[int, BaseException, float], None]


class RetryPolicy(BaseModel):
    """Bounded retry budget with a backoff strategy.

    Total attempts never exceed ``max_retries + 1``.

    Attributes:
        max_retries: Retries after the first attempt (0 = single attempt)
        backoff: Strategy giving the wait before each retry
        on_retry: Optional callback invoked before each backoff wait

    Example:
        >>> policy = RetryPolicy(max_retries=3, backoff=ExponentialBackoff(0.1, 2))
        >>> policy.interval_for_retry(2)
        0.4
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,  # For Backoff protocol
        validate_default=True,
        extra="forbid",
        revalidate_instances="never",
        json_schema_extra={
            "title": "Retry Policy",
            "description": "Retry budget and backoff between failed attempts",
            "examples": [{"max_retries": 3}],
        },
    )

    max_retries: Annotated[int, Field(ge=0)] = 0
    backoff: Backoff = Field(default_factory=ConstantBackoff, repr=False)
    on_retry: RetryCallback | None = Field(default=None, exclude=True, repr=False)

    @computed_field
    @property
    def is_disabled(self) -> bool:
        """Whether a failed attempt is never retried."""
        return self.max_retries == 0

    @computed_field
    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def exhausted(self, retries: int) -> bool:
        """Whether ``retries`` retries already exceed the budget."""
        return retries > self.max_retries

    def interval_for_retry(self, retry_num: int) -> float:
        return self.backoff.interval_for_retry(retry_num)

    def __hash__(self) -> int:
        return hash((self.max_retries, self.backoff))


NO_RETRY = RetryPolicy()
