"""Retry policy for blocking coordination operations."""

import time
from dataclasses import dataclass

from ..constants import DRAIN_POLL_INTERVAL, DRAIN_TIMEOUT, LOCK_RETRY_INTERVAL, LOCK_TIMEOUT


@dataclass(frozen=True)
class RetryPolicy:
    """How long a blocking operation may wait and how often it polls.

    Attributes:
        timeout: Total budget in seconds. Zero means a single attempt.
        interval: Sleep between attempts in seconds.
    """

    timeout: float
    interval: float

    def __post_init__(self) -> None:
        if self.timeout < 0 or self.interval < 0:
            raise ValueError("timeout and interval must be non-negative")

    def deadline(self) -> float:
        """Monotonic time at which the budget is exhausted."""
        return time.monotonic() + self.timeout

    @staticmethod
    def expired(deadline: float) -> bool:
        return time.monotonic() >= deadline


DEFAULT_LOCK_POLICY = RetryPolicy(timeout=LOCK_TIMEOUT, interval=LOCK_RETRY_INTERVAL)
DEFAULT_DRAIN_POLICY = RetryPolicy(timeout=DRAIN_TIMEOUT, interval=DRAIN_POLL_INTERVAL)
SINGLE_ATTEMPT = RetryPolicy(timeout=0, interval=0)
