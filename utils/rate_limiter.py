"""
Token bucket limiter for outbound API calls.

Shared by every thread that talks to the destination API, so image
upload fan-out and sequential order calls draw from the same budget.
"""

import threading
import time
from typing import Callable

import structlog

logger = structlog.get_logger(__name__)


class RateLimiter:
    """
    Token bucket.

    Holds up to `capacity` tokens, refilled at `rate` tokens per second.
    acquire() blocks until a token is available.

    Usage:
        limiter = RateLimiter(rate=2.0, capacity=4)
        limiter.acquire()
        requests.post(...)
    """

    def __init__(
        self,
        rate: float,
        capacity: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        if rate <= 0:
            raise ValueError("rate must be positive")
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        self.rate = rate
        self.capacity = capacity
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(capacity)
        self._updated_at = clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._updated_at
        if elapsed > 0:
            self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
            self._updated_at = now

    def try_acquire(self) -> bool:
        """Take a token if one is available, without waiting."""
        with self._lock:
            self._refill()
            if self._tokens >= 1:
                self._tokens -= 1
                return True
            return False

    def acquire(self) -> float:
        """
        Take a token, waiting for one if the bucket is empty.

        Returns:
            Seconds spent waiting
        """
        waited = 0.0
        while True:
            with self._lock:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    if waited:
                        logger.debug("rate_limiter_waited", seconds=round(waited, 3))
                    return waited
                wait = (1 - self._tokens) / self.rate
            self._sleep(wait)
            waited += wait
