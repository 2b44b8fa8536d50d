from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Rolling-window request limiter with a minimum spacing between requests.

    `acquire` blocks until a request may be sent. Callers are serialized, so the
    limiter can be shared between threads.
    """

    def __init__(
        self,
        *,
        max_requests: int,
        window_seconds: float,
        min_interval_seconds: float = 0.0,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        if max_requests <= 0:
            msg = "max_requests must be > 0"
            raise ValueError(msg)
        if window_seconds <= 0:
            msg = "window_seconds must be > 0"
            raise ValueError(msg)
        if min_interval_seconds < 0:
            msg = "min_interval_seconds must be >= 0"
            raise ValueError(msg)

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep
        self._sent: deque[float] = deque()
        self._lock = threading.Lock()

    def acquire(self) -> float:
        """Wait for a free slot and return the number of seconds spent waiting."""
        waited = 0.0
        with self._lock:
            while True:
                now = self._clock()
                while self._sent and self._sent[0] <= now - self.window_seconds:
                    self._sent.popleft()

                wait_for = 0.0
                if len(self._sent) >= self.max_requests:
                    wait_for = self._sent[0] + self.window_seconds - now
                if self._sent and self.min_interval_seconds:
                    wait_for = max(wait_for, self._sent[-1] + self.min_interval_seconds - now)

                if wait_for <= 0:
                    self._sent.append(now)
                    if waited:
                        logger.debug("Rate limiter delayed request by %.2fs", waited)
                    return waited

                self._sleep(wait_for)
                waited += wait_for


__all__ = ["RateLimiter"]
