"""Retry scheduling for failed deliveries."""

import math
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Optional

# Smallest gap between two attempts of the same task.
MIN_RETRY_DELAY = 0.001


@dataclass
class RetryPolicy:
    """Exponential backoff with jitter, bounded by ``max_attempts``.

    Attributes:
        max_attempts: Total attempts per task, first one included
        backoff_base: Delay after the first failed attempt
        max_backoff: Cap applied before jitter
        jitter: Fractional spread; 0.2 means the delay varies by up to 20% either way
    """

    max_attempts: int = 5
    backoff_base: float = 1.0
    max_backoff: float = 300.0
    jitter: float = 0.2
    random_func: Callable[[float, float], float] = random.uniform

    def should_retry(self, attempt: int) -> bool:
        """Return True if another attempt is allowed after ``attempt`` failed."""
        return attempt < self.max_attempts

    def compute_delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """Seconds to wait before the attempt that follows ``attempt``.

        A receiver-supplied ``retry_after`` replaces the computed backoff but
        is held to ``max_backoff``; a non-finite value is ignored.
        """
        if retry_after is not None and math.isfinite(retry_after):
            return min(max(retry_after, MIN_RETRY_DELAY), self.max_backoff)

        delay = min(self.backoff_base * (2 ** (attempt - 1)), self.max_backoff)
        if self.jitter:
            delay *= self.random_func(1 - self.jitter, 1 + self.jitter)
        return max(delay, MIN_RETRY_DELAY)

    def next_attempt_at(
        self,
        attempt: int,
        now: float,
        previous: float,
        retry_after: Optional[float] = None,
    ) -> float:
        """Absolute time of the next attempt, always later than ``previous``."""
        scheduled = now + self.compute_delay(attempt, retry_after)
        if scheduled <= previous:
            scheduled = previous + MIN_RETRY_DELAY
        return scheduled


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """Parse a ``Retry-After`` header given as seconds or as an HTTP date.

    Returns:
        Seconds to wait, or None if the header is absent or unparseable
    """
    if not value:
        return None

    value = str(value).strip()
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        pass
    else:
        return max(seconds, 0.0) if math.isfinite(seconds) else None

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    return max((retry_at - now).total_seconds(), 0.0)
