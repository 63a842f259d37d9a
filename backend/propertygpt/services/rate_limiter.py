"""
Sliding-window rate limiter for language model calls.

Callers over the cap wait until the oldest request leaves the window
instead of being rejected.
"""

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Optional

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """
    Caps the number of requests started within a rolling time window.

    The request timestamps are guarded by a lock that is never held while
    sleeping, so a waiting caller does not block other threads from
    checking the window.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float = 60.0,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None
    ):
        """
        Args:
            max_requests: Requests allowed per window
            window_seconds: Window length in seconds
            clock: Monotonic time source (defaults to time.monotonic)
            sleep: Sleep function (defaults to time.sleep)
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep
        self._requests: Deque[float] = deque()
        self._lock = threading.Lock()

    def _evict_expired(self, now: float):
        while self._requests and now - self._requests[0] >= self.window_seconds:
            self._requests.popleft()

    def acquire(self) -> float:
        """
        Reserve a slot, waiting for one to free up if the window is full.

        Returns:
            Total seconds spent waiting
        """
        waited = 0.0

        while True:
            with self._lock:
                now = self._clock()
                self._evict_expired(now)

                if len(self._requests) < self.max_requests:
                    self._requests.append(now)
                    return waited

                wait_time = self.window_seconds - (now - self._requests[0])

            logger.info(
                f"Rate limit reached ({self.max_requests}/{self.window_seconds:.0f}s), "
                f"waiting {wait_time:.2f}s"
            )
            self._sleep(max(wait_time, 0.0))
            waited += max(wait_time, 0.0)

    def in_window(self) -> int:
        """Number of requests currently counted in the window."""
        with self._lock:
            self._evict_expired(self._clock())
            return len(self._requests)

    def reset(self):
        """Forget all recorded requests."""
        with self._lock:
            self._requests.clear()
