# src/app/services/commit_info.py
"""
Shapes the "last commit" payload served by /api/github/last-commit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from src.app.infra.github.client import GitHubClient, GitHubRateLimit, GitHubResponse

logger = logging.getLogger(__name__)

CACHE_DURATION = 60 * 60
SUCCESS_CACHE_CONTROL = f"public, max-age={CACHE_DURATION}, s-maxage={CACHE_DURATION}"
ERROR_CACHE_CONTROL = "public, max-age=300"
UNEXPECTED_ERROR_CACHE_CONTROL = "public, max-age=60"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET",
    "Access-Control-Allow-Headers": "Content-Type",
}

MESSAGE_MAX_LENGTH = 72


def _parse_iso(value: str) -> datetime:
    normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
    parsed = datetime.fromisoformat(normalized)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _plural(amount: int, unit: str) -> str:
    return f"{amount} {unit}{'s' if amount > 1 else ''} ago"


def format_commit_date(value: str, now: Optional[datetime] = None) -> str:
    """Relative age for recent commits ("3 hours ago"), a short date after 30 days."""
    date = _parse_iso(value)
    now = now or datetime.now(timezone.utc)
    seconds = int((now - date).total_seconds())

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return _plural(seconds // 60, "minute")
    if seconds < 86400:
        return _plural(seconds // 3600, "hour")
    if seconds < 2592000:
        return _plural(seconds // 86400, "day")
    return f"{date:%b} {date.day}, {date.year}"


def format_commit_message(message: str, max_length: int = MESSAGE_MAX_LENGTH) -> str:
    first_line = (message or "").split("\n", 1)[0]
    if len(first_line) <= max_length:
        return first_line
    return first_line[: max_length - 3] + "..."


def commit_url(owner: str, repo: str, sha: str) -> str:
    return f"https://github.com/{owner}/{repo}/commit/{sha}"


def ratelimit_payload(ratelimit: Optional[GitHubRateLimit]) -> Optional[dict[str, Any]]:
    if ratelimit is None:
        return None
    reset_time = ratelimit.reset_time
    return {
        "limit": ratelimit.limit,
        "remaining": ratelimit.remaining,
        "reset": ratelimit.reset,
        "resetTime": reset_time.isoformat().replace("+00:00", "Z") if reset_time else "",
    }


@dataclass
class CommitInfoResult:
    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


def _commit_body(
    owner: str, repo: str, commit: dict[str, Any], now: Optional[datetime]
) -> dict[str, Any]:
    details = commit.get("commit") or {}
    author = details.get("author") or {}
    account = commit.get("author") or {}
    date = author.get("date") or ""
    return {
        "sha": commit["sha"],
        "message": format_commit_message(details.get("message") or ""),
        "author": {
            "name": author.get("name"),
            "login": account.get("login"),
            "avatar_url": account.get("avatar_url"),
        },
        "date": date,
        "formattedDate": format_commit_date(date, now) if date else "",
        "url": commit_url(owner, repo, commit["sha"]),
    }


def build_last_commit_result(
    owner: str,
    repo: str,
    response: GitHubResponse,
    now: Optional[datetime] = None,
) -> CommitInfoResult:
    ratelimit = ratelimit_payload(response.ratelimit)

    if response.error:
        body: dict[str, Any] = {"error": response.error}
        if ratelimit:
            body["ratelimit"] = ratelimit
        return CommitInfoResult(500, body, {"Cache-Control": ERROR_CACHE_CONTROL})

    if not response.data:
        return CommitInfoResult(
            404, {"error": "No commit data available"}, {"Cache-Control": ERROR_CACHE_CONTROL}
        )

    body = _commit_body(owner, repo, response.data, now)
    if ratelimit:
        body["ratelimit"] = ratelimit
    cache_control = ERROR_CACHE_CONTROL if response.is_rate_limited else SUCCESS_CACHE_CONTROL
    return CommitInfoResult(200, body, {"Cache-Control": cache_control, **CORS_HEADERS})


def unexpected_error_result(error: Exception) -> CommitInfoResult:
    return CommitInfoResult(
        500,
        {
            "error": str(error) or "Internal server error",
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        },
        {"Cache-Control": UNEXPECTED_ERROR_CACHE_CONTROL},
    )


class CommitInfoService:
    def __init__(self, client: GitHubClient, default_owner: str, default_repo: str, default_branch: str = "main"):
        self._client = client
        self.default_owner = default_owner
        self.default_repo = default_repo
        self.default_branch = default_branch

    def last_commit(
        self,
        owner: Optional[str] = None,
        repo: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> CommitInfoResult:
        owner = owner or self.default_owner
        repo = repo or self.default_repo
        branch = branch or self.default_branch
        try:
            response = self._client.get_last_commit(owner, repo, branch)
            return build_last_commit_result(owner, repo, response)
        except Exception as exc:
            logger.exception("github.last_commit_failed owner=%s repo=%s", owner, repo)
            return unexpected_error_result(exc)
