"""Implementation of a rate limiter.

Controls the frequency of outgoing requests to prevent hitting API rate limits.
Uses a sliding window over the start times of admitted operations.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Deque

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 10  # Max 10 operation starts...
DEFAULT_TIME_WINDOW_SECONDS = 1.0  # ...per rolling second


class RateLimiter:
    """Sliding window rate limiter with FIFO admission.

    The asyncio lock is held while a caller waits for the window to slide, so
    callers are admitted strictly in the order they called ``acquire``.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        time_window: float = DEFAULT_TIME_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initializes the rate limiter.

        Args:
            max_requests: Maximum number of operation starts allowed in the time window.
            time_window: The time window in seconds.
            clock: Monotonic clock returning seconds.
            sleep: Coroutine function used to wait.
        """
        if max_requests <= 0 or time_window <= 0:
            raise ValueError("Max requests and time window must be positive.")

        self.max_requests = max_requests
        self.time_window = time_window
        self.timestamps: Deque[float] = deque()
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        logger.info(f"RateLimiter initialized: {max_requests} requests / {time_window} seconds")

    def _cleanup_timestamps(self, now: float) -> None:
        """Removes timestamps that have slid out of the window."""
        while self.timestamps and self.timestamps[0] <= now - self.time_window:
            self.timestamps.popleft()

    async def acquire(self) -> float:
        """Waits until a new operation may start, then records its start.

        Never rejects; it only delays.

        Returns:
            Seconds spent waiting for the window to slide.
        """
        waited = 0.0
        async with self._lock:
            while True:
                now = self._clock()
                self._cleanup_timestamps(now)
                if len(self.timestamps) < self.max_requests:
                    self.timestamps.append(now)
                    logger.debug("Rate limit permission granted.")
                    return waited

                wait_time = self.timestamps[0] + self.time_window - now
                if wait_time <= 0:
                    self.timestamps.popleft()
                    continue

                logger.debug(f"Rate limit reached. Waiting for {wait_time:.3f} seconds.")
                await self._sleep(wait_time)
                waited += wait_time
                # The oldest start has now left the window
                if self.timestamps:
                    self.timestamps.popleft()

    def get_wait_time(self) -> float:
        """Estimates the time needed before the next operation can start."""
        now = self._clock()
        recent = [ts for ts in self.timestamps if ts > now - self.time_window]
        if len(recent) < self.max_requests:
            return 0.0
        return max(0.0, recent[-self.max_requests] + self.time_window - now)

    def reset(self) -> None:
        """Forgets all recorded starts."""
        self.timestamps.clear()
        logger.debug("RateLimiter reset.")
