import time
import threading
from typing import Dict, List

from ...application.ports.rate_limiter import RateLimiter

SWEEP_EVERY = 1000


class InMemoryRateLimiter(RateLimiter):
    """Sliding-window limiter for a single process.

    Keys whose window has passed are dropped, either when the key is seen
    again or by the sweep that runs every ``SWEEP_EVERY`` calls.
    """

    def __init__(self) -> None:
        self._store: Dict[str, List[float]] = {}
        self._windows: Dict[str, int] = {}
        self._calls = 0
        self._lock = threading.Lock()

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        now = time.time()
        window_start = now - window_seconds
        with self._lock:
            self._calls += 1
            if self._calls % SWEEP_EVERY == 0:
                self._sweep(now)
            # prune
            times = [t for t in self._store.pop(key, []) if t > window_start]
            self._windows.pop(key, None)
            if len(times) >= max_requests:
                allowed = False
            else:
                times.append(now)
                allowed = True
            if times:
                self._store[key] = times
                self._windows[key] = window_seconds
            return allowed

    def reset(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)
            self._windows.pop(key, None)

    def __len__(self) -> int:
        return len(self._store)

    def _sweep(self, now: float) -> None:
        stale = [k for k, times in self._store.items() if times[-1] <= now - self._windows.get(k, 0)]
        for k in stale:
            del self._store[k]
            self._windows.pop(k, None)
