# src/app/services/filter_normalizer.py
"""
Turns raw query-string values into typed listing criteria.

Nothing in here raises: malformed values fall back to their defaults.
"""
from __future__ import annotations

from typing import Mapping, Optional

from src.app.domain.models import BlogCriteria, RecipeCriteria
from src.services.slugify import slugify

ALL = "all"
DEFAULT_SORT = "newest"
SORT_KEYS = ("newest", "oldest", "title-asc", "title-desc", "popular")
VIEW_MODES = ("grid", "list")
MAX_QUERY_LENGTH = 100

RawParams = Mapping[str, Optional[str]]


def _clean_string(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def parse_non_negative_int(value: object, default: int = 0) -> int:
    text = _clean_string(value)
    if text is None:
        return default
    try:
        number = int(text)
    except ValueError:
        return default
    return number if number >= 0 else default


def parse_page(value: object) -> int:
    page = parse_non_negative_int(value, default=1)
    return max(1, page)


def parse_choice(value: object, default: str = ALL) -> str:
    text = _clean_string(value)
    return text.lower() if text else default


def parse_sort(value: object) -> str:
    text = parse_choice(value, DEFAULT_SORT)
    return text if text in SORT_KEYS else DEFAULT_SORT


def parse_tags(value: object) -> frozenset[str]:
    text = _clean_string(value)
    if text is None:
        return frozenset()
    slugs = (slugify(part) for part in text.split(","))
    return frozenset(slug for slug in slugs if slug)


def parse_query(value: object) -> str | None:
    text = _clean_string(value)
    if text is None:
        return None
    return text[:MAX_QUERY_LENGTH].strip()


def normalize_recipe_filters(params: RawParams) -> RecipeCriteria:
    view = parse_choice(params.get("view"), "grid")
    return RecipeCriteria(
        category=parse_choice(params.get("category")),
        difficulty=parse_choice(params.get("difficulty")),
        max_time=parse_non_negative_int(params.get("maxTime")),
        servings=parse_non_negative_int(params.get("servings")),
        tags=parse_tags(params.get("tags")),
        sort=parse_sort(params.get("sort")),
        page=parse_page(params.get("page")),
        view=view if view in VIEW_MODES else "grid",
        query=parse_query(params.get("q")),
    )


def normalize_blog_filters(params: RawParams) -> BlogCriteria:
    return BlogCriteria(
        category=parse_choice(params.get("category")),
        tags=parse_tags(params.get("tags")),
        sort=parse_sort(params.get("sort")),
        page=parse_page(params.get("page")),
        query=parse_query(params.get("q")),
    )
