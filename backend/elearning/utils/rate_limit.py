"""In-memory rate limiter used to throttle login attempts."""

from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from typing import Optional


class InMemoryRateLimiter:
    """Fixed-window limiter per key, shared by all threads of one process."""

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits = defaultdict(deque)
        self._lock = threading.Lock()
        self._last_sweep = time.monotonic()

    def _sweep(self, cutoff: float) -> None:
        # drop keys whose every hit has left the window
        for key in [k for k, q in self._hits.items() if not q or q[-1] < cutoff]:
            del self._hits[key]

    def allow(self, key: str) -> tuple[bool, int]:
        """Record a hit for `key`; return `(allowed, retry_after_seconds)`."""
        now = time.monotonic()
        cutoff = now - self.window_seconds
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(cutoff)
                self._last_sweep = now
            q = self._hits[key]
            while q and q[0] < cutoff:
                q.popleft()
            if len(q) >= self.max_requests:
                return False, max(1, int(self.window_seconds - (now - q[0])))
            q.append(now)
        return True, 0

    def reset(self, key: Optional[str] = None) -> None:
        """Forget hits for `key`, or for every key when omitted."""
        with self._lock:
            if key is None:
                self._hits.clear()
            else:
                self._hits.pop(key, None)
