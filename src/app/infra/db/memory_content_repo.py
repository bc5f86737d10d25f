# src/app/infra/db/memory_content_repo.py
"""
Process-local ContentStore.

Used when no Supabase project is configured (APP_ENV=local) and by the test
suite. Every public method takes the same lock, so merge_tags and the view
counter are atomic with respect to each other.
"""
from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, TypeVar
from uuid import uuid4

from src.app.domain.errors import NotFoundError
from src.app.domain.filters import (
    Equals,
    FilterExpr,
    OrderBy,
    QuerySpec,
    Range,
    SubstringAnyOf,
    TagsAll,
)
from src.app.domain.models import BlogPost, BlogStatus, CategoryCount, ContentKind, Recipe, Tag
from src.app.infra.db.base import ContentStore

logger = logging.getLogger(__name__)

Row = TypeVar("Row", Recipe, BlogPost)

RECIPE_FIELDS = frozenset(
    {
        "slug", "title", "description", "category", "cuisine", "difficulty", "servings",
        "prep_time", "cook_time", "published", "featured", "tag_ids",
    }
)
POST_FIELDS = frozenset(
    {"slug", "title", "excerpt", "content", "category", "featured", "tag_ids"}
)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _matches(row: Any, expr: FilterExpr) -> bool:
    if isinstance(expr, Equals):
        return getattr(row, expr.field) == expr.value
    if isinstance(expr, Range):
        value = getattr(row, expr.field)
        if value is None:
            return False
        if expr.gte is not None and value < expr.gte:
            return False
        if expr.lte is not None and value > expr.lte:
            return False
        return True
    if isinstance(expr, SubstringAnyOf):
        needle = expr.text.lower()
        return any(needle in (getattr(row, name) or "").lower() for name in expr.fields)
    if isinstance(expr, TagsAll):
        return expr.tag_ids.issubset(row.tag_ids)
    raise TypeError(f"Unsupported filter expression: {expr!r}")


def _sort_key(order: OrderBy):
    def key(row: Any) -> tuple:
        value = getattr(row, order.field)
        if isinstance(value, str):
            value = value.lower()
        missing = value is None
        # missing values sort last in both directions
        return (not missing, value) if order.descending else (missing, value)

    return key


def _select(rows: Iterable[Row], spec: QuerySpec) -> list[Row]:
    matched = [row for row in rows if all(_matches(row, expr) for expr in spec.filters)]
    matched.sort(key=_sort_key(spec.order_by), reverse=spec.order_by.descending)
    return matched[spec.offset: spec.offset + spec.limit]


def _copy(row: Row) -> Row:
    return replace(row, tag_ids=list(row.tag_ids))


def _stamped(row: Row) -> Row:
    now = _now_utc()
    return replace(
        row,
        id=row.id or str(uuid4()),
        tag_ids=list(dict.fromkeys(row.tag_ids)),
        created_at=row.created_at or now,
        updated_at=row.updated_at or now,
    )


def _apply(row: Row, changes: dict, allowed: frozenset[str]) -> Row:
    for key, value in changes.items():
        if key in allowed:
            setattr(row, key, list(dict.fromkeys(value)) if key == "tag_ids" else value)
    row.updated_at = _now_utc()
    return _copy(row)


class InMemoryContentStore(ContentStore):
    def __init__(
        self,
        recipes: Iterable[Recipe] = (),
        posts: Iterable[BlogPost] = (),
        tags: Iterable[Tag] = (),
    ):
        self._lock = threading.RLock()
        self._recipes: dict[str, Recipe] = {r.id: _copy(r) for r in recipes}
        self._posts: dict[str, BlogPost] = {p.id: _copy(p) for p in posts}
        self._tags: dict[str, Tag] = {t.id: replace(t) for t in tags}

    # --- seeding -----------------------------------------------------------

    def add_recipe(self, recipe: Recipe) -> Recipe:
        with self._lock:
            self._recipes[recipe.id] = _copy(recipe)
            return _copy(recipe)

    def add_post(self, post: BlogPost) -> BlogPost:
        with self._lock:
            self._posts[post.id] = _copy(post)
            return _copy(post)

    def add_tag(self, tag: Tag) -> Tag:
        with self._lock:
            self._tags[tag.id] = replace(tag)
            return replace(tag)

    # --- recipes -----------------------------------------------------------

    def find_recipes(self, spec: QuerySpec) -> list[Recipe]:
        with self._lock:
            return [_copy(r) for r in _select(self._recipes.values(), spec)]

    def count_recipes(self, filters: tuple[FilterExpr, ...]) -> int:
        with self._lock:
            return sum(1 for r in self._recipes.values() if all(_matches(r, f) for f in filters))

    def get_recipe(self, recipe_id: str) -> Optional[Recipe]:
        with self._lock:
            recipe = self._recipes.get(recipe_id)
            return _copy(recipe) if recipe else None

    def get_recipe_by_slug(self, slug: str) -> Optional[Recipe]:
        with self._lock:
            for recipe in self._recipes.values():
                if recipe.slug == slug:
                    return _copy(recipe)
            return None

    def set_recipe_published(self, recipe_id: str, published: bool) -> Optional[Recipe]:
        with self._lock:
            recipe = self._recipes.get(recipe_id)
            if recipe is None:
                return None
            recipe.published = published
            recipe.updated_at = _now_utc()
            return _copy(recipe)

    def insert_recipe(self, recipe: Recipe) -> Recipe:
        with self._lock:
            stored = _stamped(recipe)
            self._recipes[stored.id] = stored
            return _copy(stored)

    def update_recipe(self, recipe_id: str, changes: dict) -> Optional[Recipe]:
        with self._lock:
            recipe = self._recipes.get(recipe_id)
            if recipe is None:
                return None
            return _apply(recipe, changes, RECIPE_FIELDS)

    def delete_recipe(self, recipe_id: str) -> bool:
        with self._lock:
            return self._recipes.pop(recipe_id, None) is not None

    # --- blog posts --------------------------------------------------------

    def find_posts(self, spec: QuerySpec) -> list[BlogPost]:
        with self._lock:
            return [_copy(p) for p in _select(self._posts.values(), spec)]

    def count_posts(self, filters: tuple[FilterExpr, ...]) -> int:
        with self._lock:
            return sum(1 for p in self._posts.values() if all(_matches(p, f) for f in filters))

    def get_post(self, post_id: str) -> Optional[BlogPost]:
        with self._lock:
            post = self._posts.get(post_id)
            return _copy(post) if post else None

    def get_post_by_slug(self, slug: str) -> Optional[BlogPost]:
        with self._lock:
            for post in self._posts.values():
                if post.slug == slug:
                    return _copy(post)
            return None

    def mark_post_published(self, post_id: str, published_at: datetime) -> Optional[BlogPost]:
        with self._lock:
            post = self._posts.get(post_id)
            if post is None:
                return None
            post.status = BlogStatus.PUBLISHED
            post.published_at = published_at
            post.updated_at = published_at
            return _copy(post)

    def increment_post_views(self, post_id: str) -> int:
        with self._lock:
            post = self._posts.get(post_id)
            if post is None:
                return 0
            post.views += 1
            return post.views

    def insert_post(self, post: BlogPost) -> BlogPost:
        with self._lock:
            stored = _stamped(post)
            self._posts[stored.id] = stored
            return _copy(stored)

    def update_post(self, post_id: str, changes: dict) -> Optional[BlogPost]:
        with self._lock:
            post = self._posts.get(post_id)
            if post is None:
                return None
            return _apply(post, changes, POST_FIELDS)

    def delete_post(self, post_id: str) -> bool:
        with self._lock:
            return self._posts.pop(post_id, None) is not None

    # --- tag references ----------------------------------------------------

    def _rows_for(self, kind: ContentKind) -> dict[str, Any]:
        return self._recipes if kind == ContentKind.RECIPE else self._posts

    def content_slug_exists(
        self, kind: ContentKind, slug: str, exclude_id: Optional[str] = None
    ) -> bool:
        with self._lock:
            return any(
                row.slug == slug and row.id != exclude_id for row in self._rows_for(kind).values()
            )

    def category_counts(self, kind: ContentKind) -> list[CategoryCount]:
        with self._lock:
            counts = Counter(row.category for row in self._rows_for(kind).values() if row.is_visible)
        return [
            CategoryCount(category, count)
            for category, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        ]

    def set_entity_tags(self, kind: ContentKind, entity_id: str, tag_ids: list[str]) -> bool:
        with self._lock:
            row = self._rows_for(kind).get(entity_id)
            if row is None:
                return False
            row.tag_ids = list(dict.fromkeys(tag_ids))
            row.updated_at = _now_utc()
            return True

    def _all_rows(self) -> list[Any]:
        return [*self._recipes.values(), *self._posts.values()]

    def count_tag_references(self, tag_id: str) -> int:
        with self._lock:
            return sum(1 for row in self._all_rows() if tag_id in row.tag_ids)

    def recount_tag(self, tag_id: str) -> int:
        with self._lock:
            tag = self._tags.get(tag_id)
            if tag is None:
                return 0
            tag.count = sum(
                1 for row in self._all_rows() if row.is_visible and tag_id in row.tag_ids
            )
            return tag.count

    def merge_tags(self, source_id: str, target_id: str) -> Tag:
        with self._lock:
            if source_id not in self._tags:
                raise NotFoundError("Tag", source_id)
            if target_id not in self._tags:
                raise NotFoundError("Tag", target_id)
            for row in self._all_rows():
                if source_id not in row.tag_ids:
                    continue
                reassigned = [target_id if t == source_id else t for t in row.tag_ids]
                row.tag_ids = list(dict.fromkeys(reassigned))
            del self._tags[source_id]
            self.recount_tag(target_id)
            logger.info("memory_store.merge_done source=%s target=%s", source_id, target_id)
            return replace(self._tags[target_id])

    # --- tags --------------------------------------------------------------

    def list_tags(self) -> list[Tag]:
        with self._lock:
            return sorted((replace(t) for t in self._tags.values()), key=lambda t: t.name.lower())

    def get_tag(self, tag_id: str) -> Optional[Tag]:
        with self._lock:
            tag = self._tags.get(tag_id)
            return replace(tag) if tag else None

    def get_tag_by_slug(self, slug: str) -> Optional[Tag]:
        with self._lock:
            for tag in self._tags.values():
                if tag.slug == slug:
                    return replace(tag)
            return None

    def get_tags_by_slugs(self, slugs: Iterable[str]) -> list[Tag]:
        wanted = set(slugs)
        with self._lock:
            return [replace(t) for t in self._tags.values() if t.slug in wanted]

    def slug_exists(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        with self._lock:
            return any(t.slug == slug and t.id != exclude_id for t in self._tags.values())

    def insert_tag(self, name: str, slug: str, color: str) -> Tag:
        with self._lock:
            tag = Tag(id=str(uuid4()), name=name, slug=slug, color=color, created_at=_now_utc())
            self._tags[tag.id] = tag
            return replace(tag)

    def upsert_tag(self, name: str, slug: str, color: str) -> Tag:
        with self._lock:
            existing = self.get_tag_by_slug(slug)
            if existing:
                return existing
            return self.insert_tag(name, slug, color)

    def update_tag(self, tag_id: str, changes: dict) -> Optional[Tag]:
        with self._lock:
            tag = self._tags.get(tag_id)
            if tag is None:
                return None
            for key in ("name", "slug", "color"):
                if key in changes:
                    setattr(tag, key, changes[key])
            return replace(tag)

    def delete_tag(self, tag_id: str) -> bool:
        with self._lock:
            return self._tags.pop(tag_id, None) is not None

    def popular_tags(self, limit: int = 20) -> list[Tag]:
        with self._lock:
            used = [replace(t) for t in self._tags.values() if t.count > 0]
        used.sort(key=lambda t: (-t.count, t.name.lower()))
        return used[:limit]

    def search_tags(self, query: str, limit: int = 10) -> list[Tag]:
        needle = query.strip().lower()
        with self._lock:
            found = [replace(t) for t in self._tags.values() if needle in t.name.lower()]
        found.sort(key=lambda t: (-t.count, t.name.lower()))
        return found[:limit]
