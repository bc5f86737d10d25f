from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from src.app.domain.errors import InvalidTransitionError, NotFoundError
from src.app.domain.models import BlogPost, BlogStatus, Recipe
from src.app.infra.db.base import ContentStore
from src.app.services.tag_registry import TagRegistry
from src.app.services.view_cache import ViewCache

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class PublishingService:
    """
    Visibility changes for recipes and posts.

    Posts only move DRAFT -> PUBLISHED. Tag counts only include visible
    content, so every visibility change recounts the entity's tags.
    """

    def __init__(
        self,
        store: ContentStore,
        registry: TagRegistry,
        views: Optional[ViewCache] = None,
        clock: Callable[[], datetime] = _now_utc,
    ):
        self._store = store
        self._registry = registry
        self._views = views
        self._clock = clock

    def _invalidate(self, *paths: str) -> None:
        if self._views is not None:
            self._views.invalidate(*paths)

    def set_post_status(self, post_id: str, status: BlogStatus) -> BlogPost:
        post = self._store.get_post(post_id)
        if post is None:
            raise NotFoundError("Blog post", post_id)
        if post.status == status:
            return post
        if status != BlogStatus.PUBLISHED:
            raise InvalidTransitionError(post_id, post.status.value, status.value)

        updated = self._store.mark_post_published(post_id, self._clock())
        if updated is None:
            raise NotFoundError("Blog post", post_id)
        self._registry.recount(updated.tag_ids)
        self._invalidate("/blog", "/tags")
        logger.info("publishing.post_published id=%s slug=%s", post_id, updated.slug)
        return updated

    def publish_post(self, post_id: str) -> BlogPost:
        return self.set_post_status(post_id, BlogStatus.PUBLISHED)

    def set_recipe_published(self, recipe_id: str, published: bool = True) -> Recipe:
        recipe = self._store.get_recipe(recipe_id)
        if recipe is None:
            raise NotFoundError("Recipe", recipe_id)
        if recipe.published == published:
            return recipe

        updated = self._store.set_recipe_published(recipe_id, published)
        if updated is None:
            raise NotFoundError("Recipe", recipe_id)
        self._registry.recount(updated.tag_ids)
        self._invalidate("/recipes", "/tags")
        logger.info("publishing.recipe_visibility id=%s published=%s", recipe_id, published)
        return updated

    def record_view(self, post_id: str) -> int:
        """Bump the view counter of a post; returns the new value."""
        return self._store.increment_post_views(post_id)
