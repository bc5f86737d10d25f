# src/app/routers/publish.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, HTTPException
from starlette.concurrency import run_in_threadpool

from src.app.deps import get_publishing_service, require_admin
from src.app.domain.errors import InvalidTransitionError, NotFoundError, UpstreamError
from src.app.schemas.auth import CurrentUser
from src.app.schemas.listings import BlogPostResponse, RecipeResponse
from src.app.services.publishing import PublishingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/blog/{post_id}/publish", response_model=BlogPostResponse)
async def publish_post(
    post_id: str,
    user: CurrentUser = Depends(require_admin),
    publishing: PublishingService = Depends(get_publishing_service),
) -> BlogPostResponse:
    try:
        post = await run_in_threadpool(publishing.publish_post, post_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except UpstreamError as exc:
        logger.error("publishing.post_failed post=%s user=%s error=%s", post_id, user.id, exc)
        raise HTTPException(status_code=502, detail="Failed to publish post") from exc
    return BlogPostResponse.from_domain(post, include_content=True)


@router.post("/recipes/{recipe_id}/publish", response_model=RecipeResponse)
async def publish_recipe(
    recipe_id: str,
    published: bool = Form(True),
    user: CurrentUser = Depends(require_admin),
    publishing: PublishingService = Depends(get_publishing_service),
) -> RecipeResponse:
    try:
        recipe = await run_in_threadpool(publishing.set_recipe_published, recipe_id, published)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except UpstreamError as exc:
        logger.error("publishing.recipe_failed recipe=%s user=%s error=%s", recipe_id, user.id, exc)
        raise HTTPException(status_code=502, detail="Failed to update recipe") from exc
    return RecipeResponse.from_domain(recipe)
