# src/app/routers/content.py
from __future__ import annotations

import logging
from typing import Any, Callable

from fastapi import APIRouter, Depends, HTTPException, Response
from starlette.concurrency import run_in_threadpool

from src.app.deps import get_content_admin, require_admin
from src.app.domain.errors import NotFoundError, UpstreamError, ValidationError
from src.app.domain.models import BlogStatus
from src.app.schemas.auth import CurrentUser
from src.app.schemas.content import AdminStatsResponse, BlogPostInput, RecipeInput
from src.app.schemas.listings import BlogPostResponse, RecipeResponse
from src.app.services.content_admin import ContentAdmin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


async def _call(action: str, user: CurrentUser, fn: Callable[..., Any], *args: Any) -> Any:
    try:
        return await run_in_threadpool(fn, *args)
    except ValidationError as exc:
        raise HTTPException(
            status_code=400, detail={"field": exc.field, "message": exc.message}
        ) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=f"{exc.resource} not found") from exc
    except UpstreamError as exc:
        logger.error("content.%s_failed user=%s error=%s", action, user.id, exc)
        raise HTTPException(status_code=502, detail=f"Failed to {action.replace('_', ' ')}") from exc


# --- recipes ---------------------------------------------------------------

@router.post("/recipes", response_model=RecipeResponse, status_code=201)
async def create_recipe(
    payload: RecipeInput,
    user: CurrentUser = Depends(require_admin),
    admin: ContentAdmin = Depends(get_content_admin),
) -> RecipeResponse:
    recipe = await _call("create_recipe", user, admin.create_recipe, payload.changes(), user.id)
    return RecipeResponse.from_domain(recipe)


@router.patch("/recipes/{recipe_id}", response_model=RecipeResponse)
async def update_recipe(
    recipe_id: str,
    payload: RecipeInput,
    user: CurrentUser = Depends(require_admin),
    admin: ContentAdmin = Depends(get_content_admin),
) -> RecipeResponse:
    recipe = await _call("update_recipe", user, admin.update_recipe, recipe_id, payload.changes())
    return RecipeResponse.from_domain(recipe)


@router.delete("/recipes/{recipe_id}", status_code=204)
async def delete_recipe(
    recipe_id: str,
    user: CurrentUser = Depends(require_admin),
    admin: ContentAdmin = Depends(get_content_admin),
) -> Response:
    await _call("delete_recipe", user, admin.delete_recipe, recipe_id)
    return Response(status_code=204)


@router.post("/recipes/{recipe_id}/featured", response_model=RecipeResponse)
async def toggle_recipe_featured(
    recipe_id: str,
    user: CurrentUser = Depends(require_admin),
    admin: ContentAdmin = Depends(get_content_admin),
) -> RecipeResponse:
    recipe = await _call("toggle_recipe_featured", user, admin.toggle_recipe_featured, recipe_id)
    return RecipeResponse.from_domain(recipe)


# --- blog posts ------------------------------------------------------------

@router.post("/blog", response_model=BlogPostResponse, status_code=201)
async def create_post(
    payload: BlogPostInput,
    user: CurrentUser = Depends(require_admin),
    admin: ContentAdmin = Depends(get_content_admin),
) -> BlogPostResponse:
    post = await _call(
        "create_post", user, admin.create_post, payload.changes(), user.id, BlogStatus(payload.status)
    )
    return BlogPostResponse.from_domain(post, include_content=True)


@router.patch("/blog/{post_id}", response_model=BlogPostResponse)
async def update_post(
    post_id: str,
    payload: BlogPostInput,
    user: CurrentUser = Depends(require_admin),
    admin: ContentAdmin = Depends(get_content_admin),
) -> BlogPostResponse:
    post = await _call("update_post", user, admin.update_post, post_id, payload.changes())
    return BlogPostResponse.from_domain(post, include_content=True)


@router.delete("/blog/{post_id}", status_code=204)
async def delete_post(
    post_id: str,
    user: CurrentUser = Depends(require_admin),
    admin: ContentAdmin = Depends(get_content_admin),
) -> Response:
    await _call("delete_post", user, admin.delete_post, post_id)
    return Response(status_code=204)


@router.post("/blog/{post_id}/featured", response_model=BlogPostResponse)
async def toggle_post_featured(
    post_id: str,
    user: CurrentUser = Depends(require_admin),
    admin: ContentAdmin = Depends(get_content_admin),
) -> BlogPostResponse:
    post = await _call("toggle_post_featured", user, admin.toggle_post_featured, post_id)
    return BlogPostResponse.from_domain(post, include_content=True)


# --- stats -----------------------------------------------------------------

@router.get("/stats", response_model=AdminStatsResponse)
async def admin_stats(
    user: CurrentUser = Depends(require_admin),
    admin: ContentAdmin = Depends(get_content_admin),
) -> AdminStatsResponse:
    try:
        stats = await run_in_threadpool(admin.stats)
    except UpstreamError as exc:
        logger.error("content.stats_failed user=%s error=%s", user.id, exc)
        raise HTTPException(status_code=500, detail="Failed to fetch stats") from exc
    return AdminStatsResponse.from_domain(stats)
