"""Sliding-window rate limiting for destination API calls."""

import time
from collections import deque
from collections.abc import Callable


class RateLimiter:
    """Sliding window rate limiter.

    Notion allows an average of three requests per second per integration.

    Example:
        >>> limiter = RateLimiter(requests_per_period=3, period_seconds=1.0)
        >>> limiter.wait_if_needed()  # Blocks if the limit would be exceeded
    """

    def __init__(
        self,
        requests_per_period: int,
        period_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.requests_per_period = requests_per_period
        self.period_seconds = period_seconds
        self.request_times: deque[float] = deque()
        self._clock = clock
        self._sleep = sleep

    def _evict(self, now: float) -> None:
        while self.request_times and self.request_times[0] <= now - self.period_seconds:
            self.request_times.popleft()

    def wait_if_needed(self) -> None:
        """Block until another request fits in the window, then record it."""
        now = self._clock()
        self._evict(now)

        if len(self.request_times) >= self.requests_per_period:
            delay = self.period_seconds - (now - self.request_times[0])
            if delay > 0:
                self._sleep(delay)
            now = self._clock()
            self._evict(now)

        self.request_times.append(now)

    def reset(self) -> None:
        """Clear all tracked requests."""
        self.request_times.clear()
