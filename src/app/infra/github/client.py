# src/app/infra/github/client.py
"""
Minimal GitHub REST client.

Responses are cached in-process (successes for the endpoint TTL, failures for
a short interval) and every upstream call first takes a slot from the local
rate limiter so a burst of visitors cannot drain the GitHub quota.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx

from src.app.services.rate_limiter import FixedWindowRateLimiter
from src.app.services.view_cache import ViewCache

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
USER_AGENT = "kitchen-notes"
LAST_COMMIT_TTL_SECONDS = 60 * 60
ERROR_TTL_SECONDS = 60
UPSTREAM_BUDGET_KEY = "github:upstream"
MAX_CACHE_ENTRIES = 256


@dataclass(frozen=True)
class GitHubRateLimit:
    limit: int
    remaining: int
    reset: int  # epoch seconds

    @property
    def reset_time(self) -> Optional[datetime]:
        if not self.reset:
            return None
        return datetime.fromtimestamp(self.reset, tz=timezone.utc)

    @property
    def is_exhausted(self) -> bool:
        return self.remaining == 0

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> "GitHubRateLimit":
        return cls(
            limit=_header_int(headers, "X-RateLimit-Limit"),
            remaining=_header_int(headers, "X-RateLimit-Remaining"),
            reset=_header_int(headers, "X-RateLimit-Reset"),
        )


@dataclass(frozen=True)
class GitHubResponse:
    data: Optional[Any] = None
    error: Optional[str] = None
    ratelimit: Optional[GitHubRateLimit] = None

    @property
    def is_rate_limited(self) -> bool:
        return self.ratelimit is not None and self.ratelimit.is_exhausted


def _header_int(headers: httpx.Headers, name: str) -> int:
    try:
        return int(headers.get(name) or 0)
    except ValueError:
        return 0


class GitHubClient:
    def __init__(
        self,
        token: Optional[str] = None,
        limiter: Optional[FixedWindowRateLimiter] = None,
        http: Optional[httpx.Client] = None,
        base_url: str = GITHUB_API_BASE,
        timeout: float = 10.0,
        error_ttl_seconds: float = ERROR_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        max_cache_entries: int = MAX_CACHE_ENTRIES,
    ):
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        }
        if token:
            headers["Authorization"] = f"token {token}"
        self._http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self._http.headers.update(headers)
        self._base_url = base_url.rstrip("/")
        self._limiter = limiter
        self._error_ttl = error_ttl_seconds
        # owner/repo/branch come from the query string, so the cache is bounded
        self._cache = ViewCache(
            ttl_seconds=LAST_COMMIT_TTL_SECONDS, clock=clock, max_entries=max_cache_entries
        )

    def close(self) -> None:
        self._http.close()

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_size(self) -> int:
        return len(self._cache)

    def get_last_commit(self, owner: str, repo: str, branch: str = "main") -> GitHubResponse:
        return self._request(f"/repos/{owner}/{repo}/commits/{branch}", LAST_COMMIT_TTL_SECONDS)

    def _cached(self, endpoint: str) -> Optional[GitHubResponse]:
        return self._cache.get(endpoint)

    def _store(self, endpoint: str, response: GitHubResponse, ttl: float) -> GitHubResponse:
        self._cache.set(endpoint, response, ttl_seconds=ttl)
        return response

    def _budget_refused(self) -> Optional[GitHubResponse]:
        if self._limiter is None:
            return None
        result = self._limiter.hit(UPSTREAM_BUDGET_KEY)
        if result.allowed:
            return None
        logger.warning("github.budget_exhausted reset=%s", result.reset_at)
        return GitHubResponse(
            error="GitHub request budget exhausted, try again later",
            ratelimit=GitHubRateLimit(
                limit=result.limit, remaining=0, reset=result.reset_at // 1000
            ),
        )

    def _request(self, endpoint: str, ttl_seconds: float) -> GitHubResponse:
        cached = self._cached(endpoint)
        if cached is not None:
            # cache hits carry no fresh quota info
            return GitHubResponse(data=cached.data, error=cached.error)

        refused = self._budget_refused()
        if refused is not None:
            return self._store(endpoint, refused, self._error_ttl)

        try:
            res = self._http.get(f"{self._base_url}{endpoint}")
        except httpx.HTTPError as error:
            logger.error("github.request_failed endpoint=%s error=%s", endpoint, error)
            return self._store(
                endpoint,
                GitHubResponse(error=str(error) or "GitHub request failed"),
                self._error_ttl,
            )

        ratelimit = GitHubRateLimit.from_headers(res.headers)
        if res.is_error:
            try:
                body = res.json()
            except ValueError:
                body = None
            message = body.get("message") if isinstance(body, dict) else None
            error = message or f"GitHub API error: {res.status_code} {res.reason_phrase}"
            logger.warning("github.upstream_error endpoint=%s status=%s", endpoint, res.status_code)
            return self._store(
                endpoint, GitHubResponse(error=error, ratelimit=ratelimit), self._error_ttl
            )

        try:
            data = res.json()
        except ValueError:
            return self._store(
                endpoint,
                GitHubResponse(error="Malformed GitHub response", ratelimit=ratelimit),
                self._error_ttl,
            )

        logger.info(
            "github.fetched endpoint=%s remaining=%s", endpoint, ratelimit.remaining
        )
        return self._store(endpoint, GitHubResponse(data=data, ratelimit=ratelimit), ttl_seconds)
