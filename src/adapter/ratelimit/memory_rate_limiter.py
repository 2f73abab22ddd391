"""In-process implementation of RateLimiter.

Fixed-window counter per client key:
- Window: starts at a client's first request, lasts ``window_seconds``
- Budget: ``limit`` admissions per window, the rest rejected until it rolls over
- Memory: expired windows are swept at most once per window, and the number of
  tracked clients is capped with least-recently-used eviction

State is process-wide and resets on restart. Multi-instance deployments
should use RedisRateLimiter so every instance shares one budget.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    started_at: float
    count: int = 0


class InMemoryRateLimiter:
    def __init__(
        self,
        limit: int = 60,
        window_seconds: int = 60,
        max_clients: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 1 or window_seconds < 1 or max_clients < 1:
            raise ValueError("limit, window_seconds and max_clients must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self.max_clients = max_clients
        self._clock = clock
        self._windows: OrderedDict[str, _Window] = OrderedDict()
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    # ── RateLimiter implementation ───────────────────────────

    def admit(self, client_key: str) -> bool:
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep_locked(now)

            window = self._windows.get(client_key)
            if window is None or self._expired(window, now):
                window = _Window(started_at=now)
                self._windows[client_key] = window
            self._windows.move_to_end(client_key)

            if window.count >= self.limit:
                return False
            window.count += 1

            while len(self._windows) > self.max_clients:
                evicted, _ = self._windows.popitem(last=False)
                logger.debug("Evicted rate limit entry", extra={"clientKey": evicted})
            return True

    def ping(self) -> bool:
        return True

    # ── maintenance ──────────────────────────────────────────

    def sweep(self) -> int:
        """Drop every client whose window has expired. Return how many were dropped."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, window in self._windows.items() if self._expired(window, now)]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now
        return len(expired)

    def _expired(self, window: _Window, now: float) -> bool:
        return now - window.started_at >= self.window_seconds
