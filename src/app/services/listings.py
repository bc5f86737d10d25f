# src/app/services/listings.py
"""
Public read side for recipes and blog posts.

raw params -> normalized criteria -> tag slugs resolved to ids -> QuerySpec
-> count + windowed find -> ListingPage
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Generic, Optional, Sequence, TypeVar, Union

from src.app.domain.models import (
    BlogCriteria,
    BlogPost,
    CategoryCount,
    ContentKind,
    Recipe,
    RecipeCriteria,
)
from src.app.infra.db.base import ContentStore
from src.app.services.filter_normalizer import (
    RawParams,
    normalize_blog_filters,
    normalize_recipe_filters,
)
from src.app.services.pagination import PUBLIC_PAGE_SIZE, Pagination
from src.app.services.query_builder import (
    build_blog_query,
    build_recipe_query,
    featured_posts_query,
    featured_recipes_query,
    recent_posts_query,
    recent_recipes_query,
)
from src.app.services.tag_registry import TagRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")
C = TypeVar("C")
Item = TypeVar("Item", bound=Union[Recipe, BlogPost])

# newest visible items scored for "related" suggestions
RELATED_POOL_SIZE = 100
SAME_CATEGORY_SCORE = 3
SHARED_TAG_SCORE = 2


def rank_related(item: Item, candidates: Sequence[Item], limit: int) -> list[Item]:
    """
    Order candidates by closeness to item: +3 for the same category, +2 per
    shared tag. Ties keep the candidates' order. Zero scores still fill the
    list when nothing closer exists.
    """
    tags = set(item.tag_ids)
    scored = []
    for candidate in candidates:
        if candidate.id == item.id:
            continue
        score = SHARED_TAG_SCORE * len(tags.intersection(candidate.tag_ids))
        if candidate.category == item.category:
            score += SAME_CATEGORY_SCORE
        scored.append((score, candidate))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [candidate for _, candidate in scored[: max(0, limit)]]


@dataclass
class ListingPage(Generic[T, C]):
    criteria: C
    pagination: Pagination
    items: list[T] = field(default_factory=list)


class ListingService:
    def __init__(
        self,
        store: ContentStore,
        registry: TagRegistry,
        page_size: int = PUBLIC_PAGE_SIZE,
    ):
        self._store = store
        self._registry = registry
        self._page_size = page_size

    # --- recipes -----------------------------------------------------------

    def recipes(self, params: RawParams) -> ListingPage[Recipe, RecipeCriteria]:
        return self.recipes_for(normalize_recipe_filters(params))

    def recipes_for(self, criteria: RecipeCriteria) -> ListingPage[Recipe, RecipeCriteria]:
        tag_ids = self._registry.resolve_slugs(criteria.tags)
        if tag_ids is None:
            return self._empty(criteria)

        spec = build_recipe_query(criteria, tag_ids, self._page_size)
        total = self._store.count_recipes(spec.filters)
        pagination = Pagination.from_total(total, criteria.page, self._page_size)
        if total == 0 or pagination.is_out_of_range:
            return ListingPage(criteria=criteria, pagination=pagination)

        items = self._store.find_recipes(spec)
        logger.debug(
            "listings.recipes page=%s total=%s returned=%s", criteria.page, total, len(items)
        )
        return ListingPage(criteria=criteria, pagination=pagination, items=items)

    def featured_recipes(self, limit: int = 6) -> list[Recipe]:
        return self._store.find_recipes(featured_recipes_query(limit))

    def recipe_by_slug(self, slug: str) -> Optional[Recipe]:
        recipe = self._store.get_recipe_by_slug(slug)
        if recipe is None or not recipe.is_visible:
            return None
        return recipe

    def related_recipes(self, recipe: Recipe, limit: int = 4) -> list[Recipe]:
        pool = self._store.find_recipes(recent_recipes_query(RELATED_POOL_SIZE))
        return rank_related(recipe, pool, limit)

    def recipe_categories(self) -> list[CategoryCount]:
        return self._store.category_counts(ContentKind.RECIPE)

    # --- blog --------------------------------------------------------------

    def posts(self, params: RawParams) -> ListingPage[BlogPost, BlogCriteria]:
        return self.posts_for(normalize_blog_filters(params))

    def posts_for(self, criteria: BlogCriteria) -> ListingPage[BlogPost, BlogCriteria]:
        tag_ids = self._registry.resolve_slugs(criteria.tags)
        if tag_ids is None:
            return self._empty(criteria)

        spec = build_blog_query(criteria, tag_ids, self._page_size)
        total = self._store.count_posts(spec.filters)
        pagination = Pagination.from_total(total, criteria.page, self._page_size)
        if total == 0 or pagination.is_out_of_range:
            return ListingPage(criteria=criteria, pagination=pagination)

        items = self._store.find_posts(spec)
        return ListingPage(criteria=criteria, pagination=pagination, items=items)

    def featured_posts(self, limit: int = 3) -> list[BlogPost]:
        return self._store.find_posts(featured_posts_query(limit))

    def post_by_slug(self, slug: str) -> Optional[BlogPost]:
        post = self._store.get_post_by_slug(slug)
        if post is None or not post.is_visible:
            return None
        return post

    def related_posts(self, post: BlogPost, limit: int = 3) -> list[BlogPost]:
        pool = self._store.find_posts(recent_posts_query(RELATED_POOL_SIZE))
        return rank_related(post, pool, limit)

    def blog_categories(self) -> list[CategoryCount]:
        return self._store.category_counts(ContentKind.BLOG_POST)

    def _empty(self, criteria):
        return ListingPage(
            criteria=criteria,
            pagination=Pagination.from_total(0, criteria.page, self._page_size),
        )
