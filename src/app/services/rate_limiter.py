from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from src.app.domain.models import RateLimitResult
from src.app.infra.ratelimit.base import RateLimitStore

log = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
DEFAULT_WINDOW_MS = 60_000


def epoch_ms() -> int:
    return int(time.time() * 1000)


def window_key(key: str, now_ms: int, window_ms: int) -> str:
    return f"{key}:{now_ms // window_ms}"


class FixedWindowRateLimiter:
    """
    Fixed-window counter keyed by (caller key, floor(now / window)).

    The first hit of a window sets its reset time to now + window. Once the
    window holds `limit` hits, further hits are refused with remaining=0 and
    the same reset time until the next window index begins.
    """

    def __init__(
        self,
        store: RateLimitStore,
        limit: int = DEFAULT_LIMIT,
        window_ms: int = DEFAULT_WINDOW_MS,
        clock: Callable[[], int] = epoch_ms,
    ):
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        self._store = store
        self.limit = limit
        self.window_ms = window_ms
        self._clock = clock

    @property
    def store(self) -> RateLimitStore:
        return self._store

    def now(self) -> int:
        return self._clock()

    def hit(
        self,
        key: str,
        limit: Optional[int] = None,
        window_ms: Optional[int] = None,
    ) -> RateLimitResult:
        limit = limit or self.limit
        window_ms = window_ms or self.window_ms
        now_ms = self._clock()

        window, accepted = self._store.increment(
            window_key(key, now_ms, window_ms),
            reset_at=now_ms + window_ms,
            limit=limit,
        )
        if not accepted:
            log.info("ratelimit.refused key=%s limit=%s reset=%s", key, limit, window.reset_at)
            return RateLimitResult(allowed=False, limit=limit, remaining=0, reset_at=window.reset_at)

        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=max(0, limit - window.count),
            reset_at=window.reset_at,
        )

    def purge(self) -> int:
        return self._store.purge_expired(self._clock())


class RateLimitSweeper:
    """Background task that purges elapsed windows on a fixed interval."""

    def __init__(self, limiter: FixedWindowRateLimiter, interval_seconds: float = 60.0):
        self._limiter = limiter
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task[None]] = None
        self._stopping: Optional[asyncio.Event] = None
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        async with self._lock:
            if self.running:
                return
            self._stopping = asyncio.Event()
            self._task = asyncio.create_task(self._run(), name="ratelimit-sweeper")

    async def stop(self) -> None:
        async with self._lock:
            if not self._task:
                return
            assert self._stopping is not None
            self._stopping.set()
            try:
                await self._task
            finally:
                self._task = None

    def sweep_once(self) -> int:
        removed = self._limiter.purge()
        if removed:
            log.debug("ratelimit.sweep removed=%s", removed)
        return removed

    async def _run(self) -> None:
        assert self._stopping is not None
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
            try:
                self.sweep_once()
            except Exception:
                log.exception("ratelimit.sweep_failed")
