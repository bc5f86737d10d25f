# src/app/services/query_builder.py
"""
Builds QuerySpec values for the public listings.

The visibility predicate is always emitted first and does not depend on the
criteria: public callers never see drafts or unpublished recipes.
"""
from __future__ import annotations

from src.app.domain.filters import (
    Equals,
    FilterExpr,
    OrderBy,
    QuerySpec,
    Range,
    SubstringAnyOf,
    TagsAll,
)
from src.app.domain.models import BlogCriteria, BlogStatus, RecipeCriteria
from src.app.services.filter_normalizer import ALL, DEFAULT_SORT
from src.app.services.pagination import PUBLIC_PAGE_SIZE, PageWindow

RECIPE_VISIBLE = Equals("published", True)
BLOG_VISIBLE = Equals("status", BlogStatus.PUBLISHED.value)

RECIPE_SEARCH_FIELDS = ("title", "description")
BLOG_SEARCH_FIELDS = ("title", "excerpt", "content")

_RECIPE_ORDER: dict[str, OrderBy] = {
    "newest": OrderBy("created_at", descending=True),
    "oldest": OrderBy("created_at"),
    "title-asc": OrderBy("title"),
    "title-desc": OrderBy("title", descending=True),
    "popular": OrderBy("views", descending=True),
}

_BLOG_ORDER: dict[str, OrderBy] = {
    "newest": OrderBy("published_at", descending=True),
    "oldest": OrderBy("published_at"),
    "title-asc": OrderBy("title"),
    "title-desc": OrderBy("title", descending=True),
    "popular": OrderBy("views", descending=True),
}


def recipe_order(sort: str) -> OrderBy:
    return _RECIPE_ORDER.get(sort, _RECIPE_ORDER[DEFAULT_SORT])


def blog_order(sort: str) -> OrderBy:
    return _BLOG_ORDER.get(sort, _BLOG_ORDER[DEFAULT_SORT])


def _text_filter(query: str | None, fields: tuple[str, ...]) -> list[FilterExpr]:
    if not query or not query.strip():
        return []
    return [SubstringAnyOf(fields=fields, text=query.strip())]


def _tag_filter(tag_ids: frozenset[str] | None) -> list[FilterExpr]:
    if not tag_ids:
        return []
    return [TagsAll(tag_ids=frozenset(tag_ids))]


def build_recipe_filters(
    criteria: RecipeCriteria,
    tag_ids: frozenset[str] | None = None,
) -> tuple[FilterExpr, ...]:
    filters: list[FilterExpr] = [RECIPE_VISIBLE]
    if criteria.category != ALL:
        filters.append(Equals("category", criteria.category))
    if criteria.difficulty != ALL:
        filters.append(Equals("difficulty", criteria.difficulty))
    if criteria.max_time > 0:
        filters.append(Range("total_time", lte=criteria.max_time))
    if criteria.servings > 0:
        filters.append(Range("servings", gte=criteria.servings))
    filters.extend(_tag_filter(tag_ids))
    filters.extend(_text_filter(criteria.query, RECIPE_SEARCH_FIELDS))
    return tuple(filters)


def build_recipe_query(
    criteria: RecipeCriteria,
    tag_ids: frozenset[str] | None = None,
    page_size: int = PUBLIC_PAGE_SIZE,
) -> QuerySpec:
    window = PageWindow.for_page(criteria.page, page_size)
    return QuerySpec(
        filters=build_recipe_filters(criteria, tag_ids),
        order_by=recipe_order(criteria.sort),
        offset=window.offset,
        limit=window.limit,
    )


def build_blog_filters(
    criteria: BlogCriteria,
    tag_ids: frozenset[str] | None = None,
) -> tuple[FilterExpr, ...]:
    filters: list[FilterExpr] = [BLOG_VISIBLE]
    if criteria.category != ALL:
        filters.append(Equals("category", criteria.category))
    filters.extend(_tag_filter(tag_ids))
    filters.extend(_text_filter(criteria.query, BLOG_SEARCH_FIELDS))
    return tuple(filters)


def build_blog_query(
    criteria: BlogCriteria,
    tag_ids: frozenset[str] | None = None,
    page_size: int = PUBLIC_PAGE_SIZE,
) -> QuerySpec:
    window = PageWindow.for_page(criteria.page, page_size)
    return QuerySpec(
        filters=build_blog_filters(criteria, tag_ids),
        order_by=blog_order(criteria.sort),
        offset=window.offset,
        limit=window.limit,
    )


def featured_recipes_query(limit: int = 6) -> QuerySpec:
    return QuerySpec(
        filters=(RECIPE_VISIBLE, Equals("featured", True)),
        order_by=recipe_order(DEFAULT_SORT),
        limit=limit,
    )


def featured_posts_query(limit: int = 3) -> QuerySpec:
    return QuerySpec(
        filters=(BLOG_VISIBLE, Equals("featured", True)),
        order_by=blog_order(DEFAULT_SORT),
        limit=limit,
    )


def recent_recipes_query(limit: int) -> QuerySpec:
    return QuerySpec(filters=(RECIPE_VISIBLE,), order_by=recipe_order(DEFAULT_SORT), limit=limit)


def recent_posts_query(limit: int) -> QuerySpec:
    return QuerySpec(filters=(BLOG_VISIBLE,), order_by=blog_order(DEFAULT_SORT), limit=limit)
