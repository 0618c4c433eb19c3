"""
Fixed-window request counters.

Counters live in process memory: they reset on restart and are not shared
between server instances.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from storyloom.core.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    started_at: float
    count: int


class FixedWindowRateLimiter:
    """Allow at most ``max_requests`` per key in each ``window_seconds`` window."""

    def __init__(
        self,
        name: str,
        max_requests: int,
        window_seconds: int,
        message: str = "Too many requests. Please try again later.",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def hit(self, key: str) -> int:
        """Count one request for ``key``.

        Returns the number of requests left in the current window, or raises
        ``RateLimitExceededError`` once the threshold is passed.
        """
        now = self._clock()
        self._prune(now)
        window = self._windows.get(key)
        if window is None or now - window.started_at >= self.window_seconds:
            window = _Window(started_at=now, count=0)
            self._windows[key] = window

        window.count += 1
        if window.count > self.max_requests:
            retry_after = math.ceil(window.started_at + self.window_seconds - now)
            logger.warning("Rate limit '%s' exceeded for %s", self.name, key)
            raise RateLimitExceededError(self.message, retry_after=max(retry_after, 1))

        return self.max_requests - window.count

    def _prune(self, now: float) -> None:
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.started_at >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]

    def __len__(self) -> int:
        return len(self._windows)

    def reset(self) -> None:
        self._windows.clear()
