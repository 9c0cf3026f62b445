"""Backoff strategies for request retries.

Provides pluggable wait calculation between attempts:
- ConstantBackoff: Fixed interval
- ExponentialBackoff: interval * base ^ retry_num, saturating at MAX_INTERVAL

Strategies are frozen and side-effect free, so one instance can be shared
across concurrent requests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

# Longest representable 64-bit nanosecond duration, in seconds
MAX_INTERVAL: float = (2**63 - 1) / 1e9


@runtime_checkable
class Backoff(Protocol):
    """Protocol for retry interval calculation.

    ``retry_num`` counts the retries already issued: the wait armed after the
    first failure uses ``retry_num = 1``. Implementations must be pure and
    defined for every non-negative ``retry_num``, including 0.
    """

    def interval_for_retry(self, retry_num: int) -> float:
        """Seconds to wait before the next attempt."""
        ...


@dataclass(frozen=True, slots=True)
class ConstantBackoff:
    """Same interval before every retry.

    Attributes:
        interval: Fixed wait in seconds (default: 0.0)
    """

    interval: float = 0.0

    def __post_init__(self) -> None:
        if self.interval < 0:
            raise ValueError(f"interval must be >= 0, got {self.interval}")

    def interval_for_retry(self, retry_num: int) -> float:
        return self.interval


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Exponentially growing interval.

    Interval = min(interval * (base ^ retry_num), max_interval)

    Overflowing values saturate at ``max_interval`` instead of raising.

    Attributes:
        interval: Interval for retry_num = 0, in seconds
        base: Growth factor per retry (default: 2)
        max_interval: Saturation cap in seconds (default: MAX_INTERVAL)
    """

    interval: float
    base: float = 2
    max_interval: float = MAX_INTERVAL

    def __post_init__(self) -> None:
        if self.interval < 0:
            raise ValueError(f"interval must be >= 0, got {self.interval}")
        if self.base < 0:
            raise ValueError(f"base must be >= 0, got {self.base}")

    def interval_for_retry(self, retry_num: int) -> float:
        if self.interval == 0:
            return 0.0
        try:
            d = self.interval * (self.base ** retry_num)
        except OverflowError:
            return self.max_interval
        return min(d, self.max_interval)
