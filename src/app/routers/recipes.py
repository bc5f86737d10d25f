# src/app/routers/recipes.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette.concurrency import run_in_threadpool

from src.app.deps import get_listing_service, get_view_cache, rate_limited
from src.app.schemas.content import CategoryCountResponse
from src.app.schemas.listings import (
    PaginationResponse,
    RecipeFilters,
    RecipeListResponse,
    RecipeResponse,
)
from src.app.services.listings import ListingService
from src.app.services.view_cache import ViewCache

router = APIRouter(prefix="/recipes", tags=["recipes"])

LISTING_VIEW = "/recipes"


@router.get("", response_model=RecipeListResponse, dependencies=[Depends(rate_limited("search"))])
async def list_recipes(
    request: Request,
    listings: ListingService = Depends(get_listing_service),
    views: ViewCache = Depends(get_view_cache),
) -> RecipeListResponse:
    """
    Public recipe listing. Accepts q, category, difficulty, maxTime, servings,
    tags (comma separated), sort, page and view; malformed values fall back
    to their defaults.
    """
    params = dict(request.query_params)

    def build() -> RecipeListResponse:
        page = listings.recipes(params)
        return RecipeListResponse(
            items=[RecipeResponse.from_domain(r) for r in page.items],
            pagination=PaginationResponse(**page.pagination.as_dict()),
            filters=RecipeFilters.from_criteria(page.criteria),
        )

    return await run_in_threadpool(views.get_or_set, LISTING_VIEW, build, tuple(sorted(params.items())))


@router.get("/featured", response_model=list[RecipeResponse])
async def featured_recipes(
    limit: int = Query(6, ge=1, le=24),
    listings: ListingService = Depends(get_listing_service),
) -> list[RecipeResponse]:
    recipes = await run_in_threadpool(listings.featured_recipes, limit)
    return [RecipeResponse.from_domain(r) for r in recipes]


@router.get("/categories", response_model=list[CategoryCountResponse])
async def recipe_categories(
    listings: ListingService = Depends(get_listing_service),
    views: ViewCache = Depends(get_view_cache),
) -> list[CategoryCountResponse]:
    def build() -> list[CategoryCountResponse]:
        return [CategoryCountResponse.from_domain(c) for c in listings.recipe_categories()]

    return await run_in_threadpool(views.get_or_set, LISTING_VIEW, build, "categories")

@router.get("/{slug}", response_model=RecipeResponse)
async def get_recipe(
    slug: str,
    listings: ListingService = Depends(get_listing_service),
) -> RecipeResponse:
    recipe = await run_in_threadpool(listings.recipe_by_slug, slug)
    if recipe is None:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return RecipeResponse.from_domain(recipe)


@router.get("/{slug}/related", response_model=list[RecipeResponse])
async def related_recipes(
    slug: str,
    limit: int = Query(4, ge=1, le=12),
    listings: ListingService = Depends(get_listing_service),
) -> list[RecipeResponse]:
    recipe = await run_in_threadpool(listings.recipe_by_slug, slug)
    if recipe is None:
        raise HTTPException(status_code=404, detail="Recipe not found")
    related = await run_in_threadpool(listings.related_recipes, recipe, limit)
    return [RecipeResponse.from_domain(r) for r in related]
