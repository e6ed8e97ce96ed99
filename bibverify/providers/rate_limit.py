"""Thread-safe token bucket shared by every worker talking to one registry."""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

# Refill arithmetic can leave a bucket a rounding error short of a whole token.
TOKEN_TOLERANCE = 1e-9


class TokenBucket:
    """Token bucket rate limiter.

    Tokens refill continuously at ``rate`` per second up to ``capacity``
    (defaults to the ceiling of the rate). :meth:`acquire` blocks until a
    token is available. The lock is released while sleeping so other threads
    can compute their own wait.
    """

    def __init__(
        self,
        rate: float,
        *,
        capacity: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be positive")
        self.rate = float(rate)
        self.capacity = float(capacity if capacity is not None else max(1, math.ceil(rate)))
        self._clock = clock
        self._sleep = sleep
        self._tokens = self.capacity
        self._updated = clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._updated = now

    def acquire(self) -> float:
        """Take one token, sleeping as needed. Returns the total time waited."""

        waited = 0.0
        while True:
            with self._lock:
                self._refill()
                if self._tokens >= 1 - TOKEN_TOLERANCE:
                    self._tokens = max(0.0, self._tokens - 1)
                    return waited
                delay = (1 - self._tokens) / self.rate
            logger.debug("Rate limit reached, sleeping for %.2fs", delay)
            self._sleep(delay)
            waited += delay


class RateLimiterRegistry:
    """One :class:`TokenBucket` per registry name, created on first use."""

    def __init__(self, requests_per_second: float) -> None:
        self.requests_per_second = requests_per_second
        self._buckets: Dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> TokenBucket:
        with self._lock:
            bucket = self._buckets.get(name)
            if bucket is None:
                bucket = TokenBucket(self.requests_per_second)
                self._buckets[name] = bucket
            return bucket


__all__ = ["RateLimiterRegistry", "TokenBucket"]
