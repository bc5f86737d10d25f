# src/app/deps.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import Client, create_client

from src.app.config import settings
from src.app.domain.errors import StorageError
from src.app.infra.db.base import ContentStore, IdentityProvider
from src.app.infra.db.memory_content_repo import InMemoryContentStore
from src.app.infra.db.memory_identity import StaticIdentityProvider
from src.app.infra.github.client import GitHubClient
from src.app.infra.ratelimit.memory_store import InMemoryRateLimitStore
from src.app.infra.storage.base import StorageProvider
from src.app.infra.storage.r2_provider import R2StorageProvider
from src.app.schemas.auth import CurrentUser
from src.app.services.commit_info import CommitInfoService
from src.app.services.content_admin import ContentAdmin
from src.app.services.listings import ListingService
from src.app.services.publishing import PublishingService
from src.app.services.rate_limiter import FixedWindowRateLimiter, RateLimitSweeper
from src.app.services.tag_actions import TagActions
from src.app.services.tag_registry import TagRegistry
from src.app.services.view_cache import ViewCache

logger = logging.getLogger(__name__)

_client: Client | None = None
_store: ContentStore | None = None
_identity: IdentityProvider | None = None
_limiter: FixedWindowRateLimiter | None = None
_sweeper: RateLimitSweeper | None = None
_views: ViewCache | None = None
_github: GitHubClient | None = None


def get_supabase() -> Client:
    global _client
    if _client is None:
        if not settings.supabase_configured:
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are not set")
        _client = create_client(str(settings.SUPABASE_URL), settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


def get_content_store() -> ContentStore:
    global _store
    if _store is None:
        if settings.supabase_configured:
            from src.app.infra.db.supabase_content_repo import SupabaseContentStore

            _store = SupabaseContentStore(get_supabase())
        else:
            logger.warning("Supabase not configured; using the in-memory content store")
            _store = InMemoryContentStore()
    return _store


def get_identity_provider() -> IdentityProvider:
    global _identity
    if _identity is None:
        if settings.supabase_configured:
            from src.app.infra.db.supabase_identity import SupabaseIdentityProvider

            _identity = SupabaseIdentityProvider(get_supabase())
        else:
            _identity = StaticIdentityProvider()
    return _identity


def get_rate_limiter() -> FixedWindowRateLimiter:
    global _limiter
    if _limiter is None:
        _limiter = FixedWindowRateLimiter(
            InMemoryRateLimitStore(),
            limit=settings.RATE_LIMIT_REQUESTS,
            window_ms=settings.RATE_LIMIT_WINDOW_MS,
        )
    return _limiter


def get_rate_limit_sweeper() -> RateLimitSweeper:
    global _sweeper
    if _sweeper is None:
        _sweeper = RateLimitSweeper(get_rate_limiter(), settings.RATE_LIMIT_SWEEP_SECONDS)
    return _sweeper


def get_view_cache() -> ViewCache:
    global _views
    if _views is None:
        _views = ViewCache(ttl_seconds=settings.VIEW_CACHE_TTL_SECONDS)
    return _views


def get_github_client() -> GitHubClient:
    global _github
    if _github is None:
        budget = FixedWindowRateLimiter(
            get_rate_limiter().store,
            limit=settings.GITHUB_UPSTREAM_LIMIT,
            window_ms=settings.GITHUB_UPSTREAM_WINDOW_MS,
        )
        _github = GitHubClient(token=settings.GITHUB_TOKEN, limiter=budget)
    return _github


def close_github_client() -> None:
    global _github
    if _github is not None:
        _github.close()
        _github = None


def get_commit_info_service(client: GitHubClient = Depends(get_github_client)) -> CommitInfoService:
    return CommitInfoService(
        client,
        default_owner=settings.GITHUB_USERNAME,
        default_repo=settings.GITHUB_REPO,
        default_branch=settings.GITHUB_BRANCH,
    )


def get_tag_registry(store: ContentStore = Depends(get_content_store)) -> TagRegistry:
    return TagRegistry(store)


def get_tag_actions(
    registry: TagRegistry = Depends(get_tag_registry),
    views: ViewCache = Depends(get_view_cache),
) -> TagActions:
    return TagActions(registry, views)


def get_listing_service(
    store: ContentStore = Depends(get_content_store),
    registry: TagRegistry = Depends(get_tag_registry),
) -> ListingService:
    return ListingService(store, registry, page_size=settings.PUBLIC_PAGE_SIZE)


def get_publishing_service(
    store: ContentStore = Depends(get_content_store),
    registry: TagRegistry = Depends(get_tag_registry),
    views: ViewCache = Depends(get_view_cache),
) -> PublishingService:
    return PublishingService(store, registry, views)


def get_content_admin(
    store: ContentStore = Depends(get_content_store),
    registry: TagRegistry = Depends(get_tag_registry),
    views: ViewCache = Depends(get_view_cache),
) -> ContentAdmin:
    return ContentAdmin(store, registry, views)


def get_storage() -> StorageProvider:
    try:
        return R2StorageProvider(
            account_id=settings.R2_ACCOUNT_ID,
            access_key_id=settings.R2_ACCESS_KEY_ID,
            secret_access_key=settings.R2_SECRET_ACCESS_KEY,
            bucket_name=settings.R2_BUCKET_NAME,
            public_base_url=settings.R2_PUBLIC_URL,
        )
    except StorageError as e:
        logger.error("Failed to initialize storage: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage service unavailable",
        )


auth_scheme = HTTPBearer(auto_error=False)


def get_optional_user(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Optional[CurrentUser]:
    """Caller identity, or None for anonymous and invalid tokens."""
    if cred is None or cred.scheme.lower() != "bearer":
        return None
    return identity.current_user(cred.credentials)


def get_current_user(user: Optional[CurrentUser] = Depends(get_optional_user)) -> CurrentUser:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    # same answer as a missing token, so callers learn nothing about the resource
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


def _client_key(request: Request) -> str:
    # X-Forwarded-For is only applied by ProxyHeadersMiddleware for trusted proxies
    return request.client.host if request.client else "anonymous"


def rate_limited(scope: str, limit: Optional[int] = None, window_ms: Optional[int] = None):
    """
    Dependency factory throttling a route per client address.
    Refused calls get 429 with X-RateLimit-* headers; allowed calls add the
    same headers to responses the route does not build itself.
    """

    def dependency(
        request: Request,
        response: Response,
        limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
    ) -> None:
        result = limiter.hit(f"{scope}:{_client_key(request)}", limit=limit, window_ms=window_ms)
        headers = {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_at // 1000),
        }
        if not result.allowed:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests",
                headers=headers,
            )
        response.headers.update(headers)

    return dependency
