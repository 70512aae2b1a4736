"""
Per-client request throttling for the analyze endpoints.

Each client gets a sliding window of request timestamps; a request is
admitted while fewer than `limit` requests fall inside the window.
"""

import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional


@dataclass
class RateLimitResult:
    """Outcome of one admission check."""
    allowed: bool
    remaining: int
    reset_at: float
    retry_after: Optional[float] = None


class RateLimiter:
    """
    Sliding-window limiter keyed by client id. Thread-safe.

    `clock` returns seconds and defaults to time.monotonic.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self.limit = max(1, limit)
        self.window = window_seconds
        self._clock = clock
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def allow(self, client_id: str) -> bool:
        return self.check(client_id).allowed

    def check(self, client_id: str) -> RateLimitResult:
        """Admit or reject one request for client_id, recording it if admitted."""
        now = self._clock()
        with self._lock:
            times = self._requests[client_id]
            while times and now - times[0] >= self.window:
                times.popleft()

            if len(times) >= self.limit:
                reset_at = times[0] + self.window
                return RateLimitResult(False, 0, reset_at, retry_after=reset_at - now)

            times.append(now)
            return RateLimitResult(True, self.limit - len(times), times[0] + self.window)

    def reset(self, client_id: Optional[str] = None) -> None:
        """Forget one client's requests, or every client's."""
        with self._lock:
            if client_id is None:
                self._requests.clear()
            else:
                self._requests.pop(client_id, None)
