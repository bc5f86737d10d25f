# src/app/routers/tags.py
from __future__ import annotations

import re
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Query
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from src.app.deps import (
    get_listing_service,
    get_optional_user,
    get_tag_actions,
    get_tag_registry,
    get_view_cache,
    require_admin,
)
from src.app.domain.models import ContentKind, RecipeCriteria, BlogCriteria
from src.app.schemas.auth import CurrentUser
from src.app.schemas.listings import BlogPostResponse, RecipeResponse
from src.app.schemas.tags import (
    MutationResult,
    TagDetailResponse,
    TagResponse,
    TagStatsResponse,
)
from src.app.services.listings import ListingService
from src.app.services.tag_actions import ADMIN_TAGS_VIEW, PUBLIC_TAGS_VIEW, TagActions
from src.app.services.tag_registry import TagRegistry
from src.app.services.view_cache import ViewCache

router = APIRouter(prefix="/tags", tags=["tags"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])

_STATUS_BY_CODE = {
    "validation": 400,
    "unauthorized": 401,
    "not_found": 404,
    "in_use": 409,
    "upstream": 502,
    "error": 500,
}
_NAME_SPLIT_RE = re.compile(r"[,\n]")


def _respond(result: MutationResult, success_status: int = 200) -> JSONResponse:
    status_code = success_status if result.success else _STATUS_BY_CODE.get(result.code or "error", 500)
    return JSONResponse(status_code=status_code, content=result.model_dump(exclude_none=True))


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    return value if value is not None and value.strip() else None


# --- public -----------------------------------------------------------------


@router.get("", response_model=list[TagResponse])
async def list_tags(
    registry: TagRegistry = Depends(get_tag_registry),
    views: ViewCache = Depends(get_view_cache),
) -> list[TagResponse]:
    def build() -> list[TagResponse]:
        return [TagResponse.from_domain(t) for t in registry.list_all()]

    return await run_in_threadpool(views.get_or_set, PUBLIC_TAGS_VIEW, build)


@router.get("/popular", response_model=list[TagResponse])
async def popular_tags(
    limit: int = Query(20, ge=1, le=100),
    registry: TagRegistry = Depends(get_tag_registry),
) -> list[TagResponse]:
    tags = await run_in_threadpool(registry.popular, limit)
    return [TagResponse.from_domain(t) for t in tags]


@router.get("/search", response_model=list[TagResponse])
async def search_tags(
    q: str = Query("", max_length=50),
    limit: int = Query(10, ge=1, le=50),
    registry: TagRegistry = Depends(get_tag_registry),
) -> list[TagResponse]:
    tags = await run_in_threadpool(registry.search, q, limit)
    return [TagResponse.from_domain(t) for t in tags]


@router.get("/{slug}", response_model=TagDetailResponse)
async def get_tag(
    slug: str,
    registry: TagRegistry = Depends(get_tag_registry),
    listings: ListingService = Depends(get_listing_service),
) -> TagDetailResponse:
    tag = await run_in_threadpool(registry.get_by_slug, slug)
    if tag is None:
        raise HTTPException(status_code=404, detail="Tag not found")

    tag_filter = frozenset({tag.slug})
    recipes = await run_in_threadpool(listings.recipes_for, RecipeCriteria(tags=tag_filter))
    posts = await run_in_threadpool(listings.posts_for, BlogCriteria(tags=tag_filter))
    return TagDetailResponse(
        tag=TagResponse.from_domain(tag),
        recipes=[RecipeResponse.from_domain(r) for r in recipes.items],
        posts=[BlogPostResponse.from_domain(p) for p in posts.items],
    )


# --- admin ------------------------------------------------------------------


@admin_router.get("/tags", response_model=list[TagResponse])
async def admin_list_tags(
    _: CurrentUser = Depends(require_admin),
    registry: TagRegistry = Depends(get_tag_registry),
    views: ViewCache = Depends(get_view_cache),
) -> list[TagResponse]:
    def build() -> list[TagResponse]:
        return [TagResponse.from_domain(t) for t in registry.list_all()]

    return await run_in_threadpool(views.get_or_set, ADMIN_TAGS_VIEW, build)


@admin_router.get("/tags/stats", response_model=TagStatsResponse)
async def admin_tag_stats(
    _: CurrentUser = Depends(require_admin),
    registry: TagRegistry = Depends(get_tag_registry),
) -> TagStatsResponse:
    stats = await run_in_threadpool(registry.stats)
    return TagStatsResponse.from_domain(stats)


@admin_router.post("/tags", response_model=MutationResult)
async def create_tag(
    name: str = Form(""),
    color: Optional[str] = Form(None),
    user: Optional[CurrentUser] = Depends(get_optional_user),
    actions: TagActions = Depends(get_tag_actions),
) -> JSONResponse:
    result = await run_in_threadpool(actions.create, user, name, _blank_to_none(color))
    return _respond(result, success_status=201)


@admin_router.post("/tags/merge", response_model=MutationResult)
async def merge_tags(
    source_id: str = Form(""),
    target_id: str = Form(""),
    user: Optional[CurrentUser] = Depends(get_optional_user),
    actions: TagActions = Depends(get_tag_actions),
) -> JSONResponse:
    result = await run_in_threadpool(actions.merge, user, source_id, target_id)
    return _respond(result)


@admin_router.post("/tags/bulk", response_model=MutationResult)
async def bulk_create_tags(
    names: str = Form(""),
    user: Optional[CurrentUser] = Depends(get_optional_user),
    actions: TagActions = Depends(get_tag_actions),
) -> JSONResponse:
    """names: comma or newline separated list."""
    result = await run_in_threadpool(actions.bulk_create, user, _NAME_SPLIT_RE.split(names))
    return _respond(result)


@admin_router.post("/tags/{tag_id}", response_model=MutationResult)
async def update_tag(
    tag_id: str,
    name: Optional[str] = Form(None),
    color: Optional[str] = Form(None),
    user: Optional[CurrentUser] = Depends(get_optional_user),
    actions: TagActions = Depends(get_tag_actions),
) -> JSONResponse:
    result = await run_in_threadpool(
        actions.update, user, tag_id, _blank_to_none(name), _blank_to_none(color)
    )
    return _respond(result)


@admin_router.delete("/tags/{tag_id}", response_model=MutationResult)
async def delete_tag(
    tag_id: str,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    actions: TagActions = Depends(get_tag_actions),
) -> JSONResponse:
    result = await run_in_threadpool(actions.delete, user, tag_id)
    return _respond(result)


@admin_router.post("/{kind}/{entity_id}/tags/{tag_id}", response_model=MutationResult)
async def attach_tag(
    kind: ContentKind,
    entity_id: str,
    tag_id: str,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    actions: TagActions = Depends(get_tag_actions),
) -> JSONResponse:
    result = await run_in_threadpool(actions.attach, user, kind, entity_id, tag_id)
    return _respond(result)


@admin_router.delete("/{kind}/{entity_id}/tags/{tag_id}", response_model=MutationResult)
async def detach_tag(
    kind: ContentKind,
    entity_id: str,
    tag_id: str,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    actions: TagActions = Depends(get_tag_actions),
) -> JSONResponse:
    result = await run_in_threadpool(actions.detach, user, kind, entity_id, tag_id)
    return _respond(result)
