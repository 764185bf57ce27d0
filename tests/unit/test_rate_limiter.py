"""
Unit tests for RateLimiter.

Run: pytest tests/unit/test_rate_limiter.py -v
"""

import pytest

from utils.rate_limiter import RateLimiter


class FakeClock:
    """Manual clock; sleeping advances it."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestRateLimiterAcquire:
    """Tests for RateLimiter.acquire()"""

    def test_burst_available_immediately(self):
        """Should hand out `capacity` tokens without waiting."""
        # Arrange
        clock = FakeClock()
        limiter = RateLimiter(rate=2.0, capacity=3, clock=clock, sleep=clock.sleep)

        # Act
        waits = [limiter.acquire() for _ in range(3)]

        # Assert
        assert waits == [0.0, 0.0, 0.0]
        assert clock.sleeps == []

    def test_waits_when_bucket_empty(self):
        """Should wait 1/rate seconds for the next token."""
        # Arrange
        clock = FakeClock()
        limiter = RateLimiter(rate=2.0, capacity=1, clock=clock, sleep=clock.sleep)
        limiter.acquire()

        # Act
        waited = limiter.acquire()

        # Assert
        assert waited == pytest.approx(0.5)
        assert clock.now == pytest.approx(0.5)

    def test_refills_over_time(self):
        """Should refill tokens as time passes, up to capacity."""
        # Arrange
        clock = FakeClock()
        limiter = RateLimiter(rate=1.0, capacity=2, clock=clock, sleep=clock.sleep)
        limiter.acquire()
        limiter.acquire()

        # Act
        clock.now += 10

        # Assert
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is False


class TestRateLimiterInit:
    """Tests for RateLimiter validation."""

    def test_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            RateLimiter(rate=0)

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            RateLimiter(rate=1.0, capacity=0)
