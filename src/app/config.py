from __future__ import annotations

from typing import Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    # Without Supabase settings the API runs on the in-memory store
    SUPABASE_URL: Optional[AnyUrl] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"],
    )
    # proxies whose X-Forwarded-For is trusted for the client address
    FORWARDED_ALLOW_IPS: list[str] = Field(default_factory=lambda: ["127.0.0.1"])

    PUBLIC_PAGE_SIZE: int = Field(default=12, ge=1, le=50)
    VIEW_CACHE_TTL_SECONDS: float = 300.0

    RATE_LIMIT_REQUESTS: int = Field(default=100, ge=1)
    RATE_LIMIT_WINDOW_MS: int = Field(default=60_000, ge=1)
    RATE_LIMIT_SWEEP_SECONDS: float = 60.0

    GITHUB_TOKEN: Optional[str] = None
    GITHUB_USERNAME: str = "your-username"
    GITHUB_REPO: str = "my-website"
    GITHUB_BRANCH: str = "main"
    # local budget for upstream calls, below GitHub's own quota
    GITHUB_UPSTREAM_LIMIT: int = Field(default=50, ge=1)
    GITHUB_UPSTREAM_WINDOW_MS: int = Field(default=3_600_000, ge=1)

    R2_ACCOUNT_ID: Optional[str] = None
    R2_ACCESS_KEY_ID: Optional[str] = None
    R2_SECRET_ACCESS_KEY: Optional[str] = None
    R2_BUCKET_NAME: Optional[str] = None
    R2_PUBLIC_URL: Optional[str] = None

    @property
    def supabase_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_SERVICE_ROLE_KEY)


settings = Settings()
