from __future__ import annotations

import threading
from dataclasses import replace

from src.app.domain.models import RateLimitWindow
from src.app.infra.ratelimit.base import RateLimitStore


class InMemoryRateLimitStore(RateLimitStore):
    """Counters live in this process only and are lost on restart."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._windows: dict[str, RateLimitWindow] = {}

    def increment(self, window_key: str, reset_at: int, limit: int) -> tuple[RateLimitWindow, bool]:
        with self._lock:
            current = self._windows.get(window_key)
            if current is None:
                current = RateLimitWindow(key=window_key, count=1, reset_at=reset_at)
                self._windows[window_key] = current
                return replace(current), True
            if current.count >= limit:
                return replace(current), False
            current.count += 1
            return replace(current), True

    def purge_expired(self, now_ms: int) -> int:
        with self._lock:
            expired = [key for key, window in self._windows.items() if window.reset_at < now_ms]
            for key in expired:
                del self._windows[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
