from __future__ import annotations

from itertools import product

from src.app.domain.filters import Equals, OrderBy, Range, SubstringAnyOf, TagsAll
from src.app.domain.models import BlogCriteria, RecipeCriteria
from src.app.services.query_builder import (
    BLOG_VISIBLE,
    RECIPE_VISIBLE,
    blog_order,
    build_blog_filters,
    build_blog_query,
    build_recipe_filters,
    build_recipe_query,
    featured_posts_query,
    featured_recipes_query,
    recipe_order,
)


class TestRecipeFilters:
    def test_defaults_only_filter_on_visibility(self) -> None:
        assert build_recipe_filters(RecipeCriteria()) == (RECIPE_VISIBLE,)

    def test_every_criterion_becomes_an_expression(self) -> None:
        criteria = RecipeCriteria(
            category="dessert",
            difficulty="easy",
            max_time=30,
            servings=4,
            query="cake",
        )

        filters = build_recipe_filters(criteria, frozenset({"t1", "t2"}))

        assert filters[0] == RECIPE_VISIBLE
        assert Equals("category", "dessert") in filters
        assert Equals("difficulty", "easy") in filters
        assert Range("total_time", lte=30) in filters
        assert Range("servings", gte=4) in filters
        assert TagsAll(frozenset({"t1", "t2"})) in filters
        assert SubstringAnyOf(("title", "description"), "cake") in filters
        assert len(filters) == 7

    def test_visibility_is_always_first(self) -> None:
        combos = product(["all", "dessert"], ["all", "hard"], [0, 45], [0, 2], [None, "soup"])
        for category, difficulty, max_time, servings, query in combos:
            criteria = RecipeCriteria(
                category=category,
                difficulty=difficulty,
                max_time=max_time,
                servings=servings,
                query=query,
            )
            filters = build_recipe_filters(criteria, frozenset({"t1"}))
            assert filters[0] == RECIPE_VISIBLE
            assert filters.count(RECIPE_VISIBLE) == 1

    def test_blank_query_is_ignored(self) -> None:
        assert build_recipe_filters(RecipeCriteria(query="   ")) == (RECIPE_VISIBLE,)

    def test_empty_tag_set_adds_nothing(self) -> None:
        assert build_recipe_filters(RecipeCriteria(), frozenset()) == (RECIPE_VISIBLE,)


class TestRecipeQuery:
    def test_window_follows_page(self) -> None:
        spec = build_recipe_query(RecipeCriteria(page=3), page_size=12)

        assert spec.offset == 24
        assert spec.limit == 12

    def test_sort_keys(self) -> None:
        assert recipe_order("newest") == OrderBy("created_at", descending=True)
        assert recipe_order("oldest") == OrderBy("created_at")
        assert recipe_order("title-asc") == OrderBy("title")
        assert recipe_order("title-desc") == OrderBy("title", descending=True)
        assert recipe_order("popular") == OrderBy("views", descending=True)

    def test_unknown_sort_is_newest(self) -> None:
        assert recipe_order("whatever") == recipe_order("newest")

    def test_featured_query(self) -> None:
        spec = featured_recipes_query(limit=4)

        assert spec.filters == (RECIPE_VISIBLE, Equals("featured", True))
        assert spec.limit == 4
        assert spec.offset == 0


class TestBlogQuery:
    def test_visibility_first_and_search_covers_content(self) -> None:
        filters = build_blog_filters(BlogCriteria(category="cooking", query="pydantic"))

        assert filters[0] == BLOG_VISIBLE
        assert Equals("category", "cooking") in filters
        assert SubstringAnyOf(("title", "excerpt", "content"), "pydantic") in filters

    def test_blog_sorts_by_published_at(self) -> None:
        assert blog_order("newest") == OrderBy("published_at", descending=True)
        assert build_blog_query(BlogCriteria(page=2)).offset == 12

    def test_featured_posts(self) -> None:
        spec = featured_posts_query()

        assert spec.filters[0] == BLOG_VISIBLE
        assert spec.limit == 3
