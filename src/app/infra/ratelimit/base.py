# src/app/infra/ratelimit/base.py
"""
Abstract counter store for the fixed-window rate limiter.
The in-memory store is single-process; a shared backend (Redis or similar)
would implement the same two operations for multi-instance deployments.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from src.app.domain.models import RateLimitWindow


class RateLimitStore(ABC):
    """
    Implementations:
    - InMemoryRateLimitStore: process-local dict behind a lock
    """

    @abstractmethod
    def increment(self, window_key: str, reset_at: int, limit: int) -> tuple[RateLimitWindow, bool]:
        """
        Record one hit against a window in a single atomic step.

        A missing window is created with count=1 and the given reset_at.
        A window already at the limit is left unchanged and the hit is refused.

        Args:
            window_key: Caller key plus window index
            reset_at: Reset time (epoch ms) to use if the window is new
            limit: Maximum hits allowed inside the window

        Returns:
            Tuple of (window state after the hit, whether the hit was accepted)
        """
        pass

    @abstractmethod
    def purge_expired(self, now_ms: int) -> int:
        """
        Delete windows whose reset time is strictly before now_ms.

        Returns:
            Number of windows removed
        """
        pass
