# src/app/routers/blog.py
from __future__ import annotations

from dataclasses import replace

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette.concurrency import run_in_threadpool

from src.app.deps import get_listing_service, get_publishing_service, get_view_cache, rate_limited
from src.app.schemas.content import CategoryCountResponse
from src.app.schemas.listings import (
    BlogFilters,
    BlogListResponse,
    BlogPostResponse,
    PaginationResponse,
)
from src.app.services.listings import ListingService
from src.app.services.publishing import PublishingService
from src.app.services.view_cache import ViewCache

router = APIRouter(prefix="/blog", tags=["blog"])

LISTING_VIEW = "/blog"


@router.get("", response_model=BlogListResponse, dependencies=[Depends(rate_limited("search"))])
async def list_posts(
    request: Request,
    listings: ListingService = Depends(get_listing_service),
    views: ViewCache = Depends(get_view_cache),
) -> BlogListResponse:
    params = dict(request.query_params)

    def build() -> BlogListResponse:
        page = listings.posts(params)
        return BlogListResponse(
            items=[BlogPostResponse.from_domain(p) for p in page.items],
            pagination=PaginationResponse(**page.pagination.as_dict()),
            filters=BlogFilters.from_criteria(page.criteria),
        )

    return await run_in_threadpool(views.get_or_set, LISTING_VIEW, build, tuple(sorted(params.items())))


@router.get("/featured", response_model=list[BlogPostResponse])
async def featured_posts(
    limit: int = Query(3, ge=1, le=12),
    listings: ListingService = Depends(get_listing_service),
) -> list[BlogPostResponse]:
    posts = await run_in_threadpool(listings.featured_posts, limit)
    return [BlogPostResponse.from_domain(p) for p in posts]


@router.get("/categories", response_model=list[CategoryCountResponse])
async def blog_categories(
    listings: ListingService = Depends(get_listing_service),
    views: ViewCache = Depends(get_view_cache),
) -> list[CategoryCountResponse]:
    def build() -> list[CategoryCountResponse]:
        return [CategoryCountResponse.from_domain(c) for c in listings.blog_categories()]

    return await run_in_threadpool(views.get_or_set, LISTING_VIEW, build, "categories")

@router.get("/{slug}", response_model=BlogPostResponse)
async def get_post(
    slug: str,
    listings: ListingService = Depends(get_listing_service),
    publishing: PublishingService = Depends(get_publishing_service),
) -> BlogPostResponse:
    post = await run_in_threadpool(listings.post_by_slug, slug)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    views = await run_in_threadpool(publishing.record_view, post.id)
    return BlogPostResponse.from_domain(replace(post, views=views), include_content=True)


@router.get("/{slug}/related", response_model=list[BlogPostResponse])
async def related_posts(
    slug: str,
    limit: int = Query(3, ge=1, le=12),
    listings: ListingService = Depends(get_listing_service),
) -> list[BlogPostResponse]:
    post = await run_in_threadpool(listings.post_by_slug, slug)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    related = await run_in_threadpool(listings.related_posts, post, limit)
    return [BlogPostResponse.from_domain(p) for p in related]
