from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_MAX_ENTRIES = 1024


@dataclass
class _Entry:
    value: Any
    expires_at: float


class ViewCache:
    """
    Short-lived cache of rendered listing payloads, keyed by view path plus
    a variant (query string, page...). Writes that change what a view shows
    call invalidate() with the affected paths.

    Keys come from request input, so the cache is bounded: every write drops
    expired entries, and past max_entries the oldest writes are evicted.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._ttl = ttl_seconds
        self._clock = clock
        self._max_entries = max_entries
        self._lock = threading.Lock()
        # insertion ordered: the first key is the oldest write
        self._entries: dict[tuple[str, Hashable], _Entry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, path: str, variant: Hashable = None) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get((path, variant))
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[(path, variant)]
                return None
            return entry.value

    def set(
        self,
        path: str,
        value: Any,
        variant: Hashable = None,
        ttl_seconds: Optional[float] = None,
    ) -> None:
        key = (path, variant)
        now = self._clock()
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._purge_expired(now)
            self._entries.pop(key, None)
            while len(self._entries) >= self._max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
            self._entries[key] = _Entry(value, now + ttl)

    def get_or_set(self, path: str, build: Callable[[], Any], variant: Hashable = None) -> Any:
        cached = self.get(path, variant)
        if cached is not None:
            return cached
        # built outside the lock; concurrent misses may build twice
        value = build()
        self.set(path, value, variant)
        return value

    def invalidate(self, *paths: str) -> int:
        """Drop every entry under the given paths (the path itself and its children)."""
        with self._lock:
            doomed = [
                key
                for key in self._entries
                if any(key[0] == p or key[0].startswith(p.rstrip("/") + "/") for p in paths)
            ]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.debug("view_cache.invalidated paths=%s entries=%s", ",".join(paths), len(doomed))
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
