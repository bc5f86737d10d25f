# src/app/services/content_admin.py
"""
Back-office writes for recipes and blog posts.

Field validation, slug derivation, featured toggles and the stats panel.
Tag counts only include visible content, so every write recounts the tags
the entity had before and after.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from src.app.domain.errors import NotFoundError, ValidationError
from src.app.domain.models import (
    BlogPost,
    BlogStatus,
    ContentKind,
    ContentStats,
    Recipe,
)
from src.app.infra.db.base import ContentStore
from src.app.services.query_builder import BLOG_VISIBLE, RECIPE_VISIBLE
from src.app.services.tag_registry import TagRegistry
from src.app.services.view_cache import ViewCache
from src.services.slugify import numbered_slug, slugify

logger = logging.getLogger(__name__)

RECIPE_CATEGORIES = frozenset(
    {"appetizers", "main-course", "desserts", "beverages", "snacks", "salads", "soups", "sides"}
)
CUISINES = frozenset(
    {
        "italian", "mexican", "indian", "chinese", "american",
        "french", "japanese", "mediterranean", "thai", "other",
    }
)
DIFFICULTIES = frozenset({"easy", "medium", "hard"})
BLOG_CATEGORIES = frozenset(
    {"development", "design", "cooking", "lifestyle", "tutorials", "reviews", "news", "personal"}
)

TITLE_LENGTH = (3, 100)
DESCRIPTION_LENGTH = (10, 500)
EXCERPT_LENGTH = (10, 300)
CONTENT_LENGTH = (100, 50_000)
MAX_MINUTES = 1440  # one day
SERVINGS_RANGE = (1, 50)
MAX_TAGS = 10

RECIPES_VIEW = "/recipes"
BLOG_VIEW = "/blog"
TAGS_VIEW = "/tags"

# request field -> model attribute
RECIPE_FIELDS = {
    "title": "title",
    "description": "description",
    "category": "category",
    "cuisine": "cuisine",
    "difficulty": "difficulty",
    "servings": "servings",
    "prepTime": "prep_time",
    "cookTime": "cook_time",
    "published": "published",
    "featured": "featured",
    "tagIds": "tag_ids",
}
POST_FIELDS = {
    "title": "title",
    "excerpt": "excerpt",
    "content": "content",
    "category": "category",
    "featured": "featured",
    "tagIds": "tag_ids",
}


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def validate_text(field: str, value: Any, bounds: tuple[int, int]) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError(field, f"{field} must be text")
    cleaned = (value or "").strip()
    low, high = bounds
    if len(cleaned) < low:
        raise ValidationError(field, f"{field} must be at least {low} characters")
    if len(cleaned) > high:
        raise ValidationError(field, f"{field} must be less than {high} characters")
    return cleaned


def validate_choice(field: str, value: Any, allowed: frozenset[str]) -> str:
    if value not in allowed:
        raise ValidationError(field, f"{field} must be one of: {', '.join(sorted(allowed))}")
    return value


def validate_int(field: str, value: Any, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, f"{field} must be a whole number")
    if value < low or value > high:
        raise ValidationError(field, f"{field} must be between {low} and {high}")
    return value


class ContentAdmin:
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

    # --- recipes -----------------------------------------------------------

    def create_recipe(self, fields: dict[str, Any], author_id: Optional[str] = None) -> Recipe:
        for required in ("title", "description"):
            if required not in fields:
                raise ValidationError(required, f"{required} is required")
        changes = self._recipe_changes(fields)
        changes["slug"] = self._unique_slug(ContentKind.RECIPE, changes["title"])

        recipe = self._store.insert_recipe(Recipe(id="", author_id=author_id, **changes))
        if recipe.published:
            self._registry.recount(recipe.tag_ids)
        self._invalidate(RECIPES_VIEW)
        logger.info("content.recipe_created id=%s slug=%s", recipe.id, recipe.slug)
        return recipe

    def update_recipe(self, recipe_id: str, fields: dict[str, Any]) -> Recipe:
        existing = self._recipe(recipe_id)
        changes = self._recipe_changes(fields)
        # published slugs are public URLs and stay put
        if "title" in changes and changes["title"] != existing.title and not existing.published:
            changes["slug"] = self._unique_slug(ContentKind.RECIPE, changes["title"], recipe_id)

        updated = self._store.update_recipe(recipe_id, changes)
        if updated is None:
            raise NotFoundError("Recipe", recipe_id)
        self._registry.recount([*existing.tag_ids, *updated.tag_ids])
        self._invalidate(RECIPES_VIEW)
        logger.info("content.recipe_updated id=%s fields=%s", recipe_id, ",".join(sorted(changes)))
        return updated

    def delete_recipe(self, recipe_id: str) -> None:
        existing = self._recipe(recipe_id)
        if not self._store.delete_recipe(recipe_id):
            raise NotFoundError("Recipe", recipe_id)
        self._registry.recount(existing.tag_ids)
        self._invalidate(RECIPES_VIEW)
        logger.info("content.recipe_deleted id=%s slug=%s", recipe_id, existing.slug)

    def toggle_recipe_featured(self, recipe_id: str) -> Recipe:
        existing = self._recipe(recipe_id)
        updated = self._store.update_recipe(recipe_id, {"featured": not existing.featured})
        if updated is None:
            raise NotFoundError("Recipe", recipe_id)
        self._invalidate(RECIPES_VIEW)
        return updated

    # --- blog posts --------------------------------------------------------

    def create_post(
        self,
        fields: dict[str, Any],
        author_id: Optional[str] = None,
        status: BlogStatus = BlogStatus.DRAFT,
    ) -> BlogPost:
        for required in ("title", "excerpt", "content"):
            if required not in fields:
                raise ValidationError(required, f"{required} is required")
        changes = self._post_changes(fields)
        changes["slug"] = self._unique_slug(ContentKind.BLOG_POST, changes["title"])

        post = BlogPost(id="", author_id=author_id, status=status, **changes)
        if status == BlogStatus.PUBLISHED:
            post = replace(post, published_at=self._clock())
        post = self._store.insert_post(post)
        if post.is_visible:
            self._registry.recount(post.tag_ids)
        self._invalidate(BLOG_VIEW)
        logger.info("content.post_created id=%s slug=%s status=%s", post.id, post.slug, status.value)
        return post

    def update_post(self, post_id: str, fields: dict[str, Any]) -> BlogPost:
        existing = self._post(post_id)
        changes = self._post_changes(fields)
        if "title" in changes and changes["title"] != existing.title and not existing.is_visible:
            changes["slug"] = self._unique_slug(ContentKind.BLOG_POST, changes["title"], post_id)

        updated = self._store.update_post(post_id, changes)
        if updated is None:
            raise NotFoundError("Blog post", post_id)
        self._registry.recount([*existing.tag_ids, *updated.tag_ids])
        self._invalidate(BLOG_VIEW)
        logger.info("content.post_updated id=%s fields=%s", post_id, ",".join(sorted(changes)))
        return updated

    def delete_post(self, post_id: str) -> None:
        existing = self._post(post_id)
        if not self._store.delete_post(post_id):
            raise NotFoundError("Blog post", post_id)
        self._registry.recount(existing.tag_ids)
        self._invalidate(BLOG_VIEW)
        logger.info("content.post_deleted id=%s slug=%s", post_id, existing.slug)

    def toggle_post_featured(self, post_id: str) -> BlogPost:
        existing = self._post(post_id)
        updated = self._store.update_post(post_id, {"featured": not existing.featured})
        if updated is None:
            raise NotFoundError("Blog post", post_id)
        self._invalidate(BLOG_VIEW)
        return updated

    # --- stats -------------------------------------------------------------

    def stats(self) -> ContentStats:
        return ContentStats(
            total_recipes=self._store.count_recipes(()),
            published_recipes=self._store.count_recipes((RECIPE_VISIBLE,)),
            total_posts=self._store.count_posts(()),
            published_posts=self._store.count_posts((BLOG_VISIBLE,)),
            total_tags=len(self._store.list_tags()),
        )

    # --- helpers -----------------------------------------------------------

    def _recipe(self, recipe_id: str) -> Recipe:
        recipe = self._store.get_recipe(recipe_id)
        if recipe is None:
            raise NotFoundError("Recipe", recipe_id)
        return recipe

    def _post(self, post_id: str) -> BlogPost:
        post = self._store.get_post(post_id)
        if post is None:
            raise NotFoundError("Blog post", post_id)
        return post

    def _recipe_changes(self, fields: dict[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        for name, value in fields.items():
            if name not in RECIPE_FIELDS:
                continue
            if name == "title":
                value = validate_text("title", value, TITLE_LENGTH)
            elif name == "description":
                value = validate_text("description", value, DESCRIPTION_LENGTH)
            elif name == "category":
                value = validate_choice("category", value, RECIPE_CATEGORIES)
            elif name == "cuisine":
                value = validate_choice("cuisine", value, CUISINES)
            elif name == "difficulty":
                value = validate_choice("difficulty", value, DIFFICULTIES)
            elif name == "servings":
                value = validate_int("servings", value, *SERVINGS_RANGE)
            elif name in ("prepTime", "cookTime"):
                value = validate_int(name, value, 0, MAX_MINUTES)
            elif name == "tagIds":
                value = self._known_tags(value)
            else:
                value = bool(value)
            changes[RECIPE_FIELDS[name]] = value
        return changes

    def _post_changes(self, fields: dict[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        for name, value in fields.items():
            if name not in POST_FIELDS:
                continue
            if name == "title":
                value = validate_text("title", value, TITLE_LENGTH)
            elif name == "excerpt":
                value = validate_text("excerpt", value, EXCERPT_LENGTH)
            elif name == "content":
                value = validate_text("content", value, CONTENT_LENGTH)
            elif name == "category":
                value = validate_choice("category", value, BLOG_CATEGORIES)
            elif name == "tagIds":
                value = self._known_tags(value)
            else:
                value = bool(value)
            changes[POST_FIELDS[name]] = value
        return changes

    def _known_tags(self, tag_ids: Optional[Iterable[str]]) -> list[str]:
        unique = list(dict.fromkeys(tag_ids or ()))
        if len(unique) > MAX_TAGS:
            raise ValidationError("tagIds", f"At most {MAX_TAGS} tags are allowed")
        for tag_id in unique:
            if self._store.get_tag(tag_id) is None:
                raise ValidationError("tagIds", f"Unknown tag: {tag_id}")
        return unique

    def _unique_slug(self, kind: ContentKind, title: str, exclude_id: Optional[str] = None) -> str:
        base = slugify(title)
        if not base:
            raise ValidationError("title", "title must contain letters or digits")
        slug = base
        counter = 1
        while self._store.content_slug_exists(kind, slug, exclude_id=exclude_id):
            slug = numbered_slug(base, counter)
            counter += 1
        return slug

    def _invalidate(self, listing_view: str) -> None:
        if self._views is not None:
            self._views.invalidate(listing_view, TAGS_VIEW)
