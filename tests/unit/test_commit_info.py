from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.app.infra.github.client import GitHubRateLimit, GitHubResponse
from src.app.services.commit_info import (
    CommitInfoService,
    SUCCESS_CACHE_CONTROL,
    build_last_commit_result,
    format_commit_date,
    format_commit_message,
    ratelimit_payload,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)
COMMIT = {
    "sha": "abc123",
    "commit": {
        "message": "Add tag merge\n\nLonger body here",
        "author": {"name": "Dev", "date": "2025-06-15T09:00:00Z"},
    },
    "author": {"login": "dev", "avatar_url": "https://avatars.example/dev"},
}


def iso(delta: timedelta) -> str:
    return (NOW - delta).isoformat().replace("+00:00", "Z")


class TestFormatCommitDate:
    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(seconds=30), "just now"),
            (timedelta(minutes=1), "1 minute ago"),
            (timedelta(minutes=5), "5 minutes ago"),
            (timedelta(hours=1), "1 hour ago"),
            (timedelta(hours=23), "23 hours ago"),
            (timedelta(days=2), "2 days ago"),
            (timedelta(days=29), "29 days ago"),
        ],
    )
    def test_relative(self, delta: timedelta, expected: str) -> None:
        assert format_commit_date(iso(delta), NOW) == expected

    def test_old_commits_show_date(self) -> None:
        assert format_commit_date("2024-03-05T10:00:00Z", NOW) == "Mar 5, 2024"


class TestFormatCommitMessage:
    def test_first_line_only(self) -> None:
        assert format_commit_message("Subject\n\nBody") == "Subject"

    def test_truncates_long_subject(self) -> None:
        message = format_commit_message("x" * 100)
        assert len(message) == 72
        assert message.endswith("...")

    def test_exact_length_kept(self) -> None:
        assert format_commit_message("y" * 72) == "y" * 72


class TestBuildResult:
    def test_success(self) -> None:
        ratelimit = GitHubRateLimit(limit=60, remaining=42, reset=1750000000)
        result = build_last_commit_result(
            "octo", "site", GitHubResponse(data=COMMIT, ratelimit=ratelimit), NOW
        )

        assert result.status_code == 200
        assert result.body["message"] == "Add tag merge"
        assert result.body["formattedDate"] == "3 hours ago"
        assert result.body["url"] == "https://github.com/octo/site/commit/abc123"
        assert result.body["author"] == {
            "name": "Dev", "login": "dev", "avatar_url": "https://avatars.example/dev",
        }
        assert result.body["ratelimit"]["remaining"] == 42
        assert result.body["ratelimit"]["resetTime"].endswith("Z")
        assert result.headers["Cache-Control"] == SUCCESS_CACHE_CONTROL
        assert result.headers["Access-Control-Allow-Origin"] == "*"

    def test_exhausted_quota_shortens_cache(self) -> None:
        ratelimit = GitHubRateLimit(limit=60, remaining=0, reset=1750000000)
        result = build_last_commit_result(
            "octo", "site", GitHubResponse(data=COMMIT, ratelimit=ratelimit), NOW
        )

        assert result.status_code == 200
        assert result.headers["Cache-Control"] == "public, max-age=300"

    def test_error(self) -> None:
        result = build_last_commit_result("octo", "site", GitHubResponse(error="Not Found"))

        assert result.status_code == 500
        assert result.body == {"error": "Not Found"}
        assert result.headers["Cache-Control"] == "public, max-age=300"

    def test_no_data(self) -> None:
        result = build_last_commit_result("octo", "site", GitHubResponse())

        assert result.status_code == 404
        assert result.body == {"error": "No commit data available"}

    def test_payload_without_reset(self) -> None:
        payload = ratelimit_payload(GitHubRateLimit(limit=0, remaining=0, reset=0))
        assert payload["resetTime"] == ""
        assert ratelimit_payload(None) is None


class StubClient:
    def __init__(self, response: GitHubResponse | None = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    def get_last_commit(self, owner: str, repo: str, branch: str = "main") -> GitHubResponse:
        self.calls.append((owner, repo, branch))
        if self.error:
            raise self.error
        return self.response


class TestCommitInfoService:
    def test_defaults_fill_missing_params(self) -> None:
        client = StubClient(GitHubResponse(data=COMMIT))
        service = CommitInfoService(client, "octo", "site", "main")

        service.last_commit(repo="other")

        assert client.calls == [("octo", "other", "main")]

    def test_unexpected_failure(self) -> None:
        service = CommitInfoService(StubClient(error=RuntimeError("kaboom")), "octo", "site")

        result = service.last_commit()

        assert result.status_code == 500
        assert result.body["error"] == "kaboom"
        assert "timestamp" in result.body
        assert result.headers["Cache-Control"] == "public, max-age=60"
