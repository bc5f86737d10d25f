from __future__ import annotations

from typing import Any

import httpx
import pytest
from postgrest.exceptions import APIError

from src.app.domain.errors import NotFoundError, UpstreamError
from src.app.domain.filters import Equals, OrderBy, QuerySpec, Range, SubstringAnyOf, TagsAll
from src.app.domain.models import BlogPost, BlogStatus, ContentKind, Recipe
from src.app.infra.db.supabase_content_repo import (
    SupabaseContentStore,
    apply_filters,
    ilike_pattern,
    like_escape,
)


class FakeResult:
    def __init__(self, data: Any = None, count: int | None = None) -> None:
        self.data = data
        self.count = count


class FakeQuery:
    """Records builder calls; execute() returns the configured outcome."""

    def __init__(self, target: str, outcome: Any = None) -> None:
        self.target = target
        self.outcome = outcome if outcome is not None else FakeResult([])
        self.calls: list[tuple[str, tuple, dict]] = []

    def __getattr__(self, name: str):
        def method(*args: Any, **kwargs: Any) -> "FakeQuery":
            self.calls.append((name, args, kwargs))
            return self

        return method

    def execute(self) -> FakeResult:
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome

    def names(self) -> list[str]:
        return [name for name, _, _ in self.calls]


class FakeClient:
    def __init__(self, outcomes: dict[str, Any] | None = None) -> None:
        self.outcomes = outcomes or {}
        self.queries: list[FakeQuery] = []

    def table(self, name: str) -> FakeQuery:
        query = FakeQuery(name, self.outcomes.get(name))
        self.queries.append(query)
        return query

    def rpc(self, name: str, params: dict[str, Any]) -> FakeQuery:
        query = FakeQuery(name, self.outcomes.get(name))
        query.calls.append(("rpc", (name, params), {}))
        self.queries.append(query)
        return query


RECIPE_ROW = {
    "id": "r1",
    "slug": "pasta",
    "title": "Pasta",
    "prep_time": 10,
    "cook_time": None,
    "servings": None,
    "published": True,
    "tag_ids": ["t1", None, "t2"],
    "created_at": "2025-01-01T10:00:00Z",
}


class TestIlikePattern:
    def test_plain_text(self) -> None:
        assert ilike_pattern("pasta") == '"*pasta*"'

    def test_like_metacharacters_are_literal(self) -> None:
        assert like_escape("50%_off") == "50\\%\\_off"

    def test_quotes_are_escaped(self) -> None:
        assert ilike_pattern('say "hi"') == '"*say \\"hi\\"*"'


class TestApplyFilters:
    def test_each_expression_maps_to_builder_call(self) -> None:
        query = FakeQuery("recipes")
        filters = (
            Equals("published", True),
            Range("total_time", lte=30),
            Range("servings", gte=4, lte=None),
            SubstringAnyOf(("title", "description"), "cake"),
            TagsAll(frozenset({"t2", "t1"})),
        )

        apply_filters(query, filters)

        assert query.calls == [
            ("eq", ("published", True), {}),
            ("lte", ("total_time", 30), {}),
            ("gte", ("servings", 4), {}),
            ("or_", ('title.ilike."*cake*",description.ilike."*cake*"',), {}),
            ("contains", ("tag_ids", ["t1", "t2"]), {}),
        ]

    def test_unknown_expression(self) -> None:
        with pytest.raises(TypeError):
            apply_filters(FakeQuery("recipes"), ("nope",))


class TestReads:
    def test_find_orders_and_windows(self) -> None:
        client = FakeClient({"recipes": FakeResult([RECIPE_ROW])})
        store = SupabaseContentStore(client)
        spec = QuerySpec(
            filters=(Equals("published", True),),
            order_by=OrderBy("created_at", descending=True),
            offset=12,
            limit=12,
        )

        recipes = store.find_recipes(spec)

        query = client.queries[0]
        assert query.calls[0] == ("select", ("*",), {})
        assert ("order", ("created_at",), {"desc": True}) in query.calls
        assert query.calls[-1] == ("range", (12, 23), {})
        assert recipes[0].tag_ids == ["t1", "t2"]
        assert recipes[0].servings == 4
        assert recipes[0].total_time == 10
        assert recipes[0].created_at.year == 2025

    def test_count_uses_exact_count(self) -> None:
        client = FakeClient({"blog_posts": FakeResult([], count=7)})

        total = SupabaseContentStore(client).count_posts((Equals("status", "published"),))

        assert total == 7
        assert client.queries[0].calls[0] == ("select", ("id",), {"count": "exact"})

    def test_post_status_parsing(self) -> None:
        row = {"id": "p1", "slug": "s", "title": "T", "status": "published"}
        client = FakeClient({"blog_posts": FakeResult([row])})

        post = SupabaseContentStore(client).get_post_by_slug("s")

        assert post.status == BlogStatus.PUBLISHED
        assert client.queries[0].calls[1] == ("eq", ("slug", "s"), {})

    def test_missing_row(self) -> None:
        assert SupabaseContentStore(FakeClient()).get_tag("missing") is None

    def test_slug_exists_excludes_own_id(self) -> None:
        client = FakeClient({"tags": FakeResult([])})

        assert SupabaseContentStore(client).slug_exists("vegan", exclude_id="t1") is False
        assert ("neq", ("id", "t1"), {}) in client.queries[0].calls

    def test_tag_search_escapes_input(self) -> None:
        client = FakeClient()

        SupabaseContentStore(client).search_tags(" 100% ")

        assert ("ilike", ("name", "*100\\%*"), {}) in client.queries[0].calls


class TestContentWrites:
    def test_insert_recipe_lets_the_database_assign_the_id(self) -> None:
        client = FakeClient({"recipes": FakeResult([RECIPE_ROW])})
        recipe = Recipe(id="", slug="pasta", title="Pasta", tag_ids=["t1", "t1", "t2"], author_id="u1")

        stored = SupabaseContentStore(client).insert_recipe(recipe)

        name, args, _ = client.queries[0].calls[0]
        assert name == "insert"
        assert "id" not in args[0]
        assert "total_time" not in args[0]
        assert args[0]["tag_ids"] == ["t1", "t2"]
        assert args[0]["author_id"] == "u1"
        assert stored.id == "r1"

    def test_insert_post_serializes_status(self) -> None:
        row = {"id": "p1", "slug": "hello", "title": "Hello", "status": "draft"}
        client = FakeClient({"blog_posts": FakeResult([row])})

        SupabaseContentStore(client).insert_post(BlogPost(id="", slug="hello", title="Hello"))

        payload = client.queries[0].calls[0][1][0]
        assert payload["status"] == "draft"
        assert payload["published_at"] is None

    def test_update_drops_unknown_columns(self) -> None:
        client = FakeClient({"recipes": FakeResult([RECIPE_ROW])})

        SupabaseContentStore(client).update_recipe("r1", {"title": "Pasta", "views": 99})

        assert client.queries[0].calls[0] == ("update", ({"title": "Pasta"},), {})
        assert ("eq", ("id", "r1"), {}) in client.queries[0].calls

    def test_update_post_cannot_change_status(self) -> None:
        row = {"id": "p1", "slug": "hello", "title": "Hello"}
        client = FakeClient({"blog_posts": FakeResult([row])})

        SupabaseContentStore(client).update_post("p1", {"status": "published"})

        assert client.queries[0].names()[0] == "select"

    def test_delete_reports_missing_row(self) -> None:
        client = FakeClient({"blog_posts": FakeResult([])})

        assert SupabaseContentStore(client).delete_post("nope") is False

    def test_content_slug_lookup_targets_the_kind_table(self) -> None:
        client = FakeClient({"blog_posts": FakeResult([{"id": "p9"}])})

        taken = SupabaseContentStore(client).content_slug_exists(
            ContentKind.BLOG_POST, "hello", exclude_id="p1"
        )

        assert taken is True
        assert client.queries[0].target == "blog_posts"
        assert ("neq", ("id", "p1"), {}) in client.queries[0].calls


class TestRpc:
    def test_view_increment(self) -> None:
        client = FakeClient({"increment_post_views": FakeResult(5)})

        assert SupabaseContentStore(client).increment_post_views("p1") == 5
        assert client.queries[0].calls[0] == ("rpc", ("increment_post_views", {"p_post_id": "p1"}), {})

    def test_merge_returns_target(self) -> None:
        row = {"id": "t2", "name": "Vegan", "slug": "vegan", "count": 3}
        client = FakeClient({"merge_tags": FakeResult([row])})

        tag = SupabaseContentStore(client).merge_tags("t1", "t2")

        assert tag.id == "t2"
        assert tag.count == 3

    def test_merge_with_missing_tag(self) -> None:
        client = FakeClient({"merge_tags": FakeResult([])})

        with pytest.raises(NotFoundError):
            SupabaseContentStore(client).merge_tags("t1", "t2")

    def test_category_counts(self) -> None:
        rows = [{"category": "desserts", "count": 3}, {"category": "soups", "count": 1}]
        client = FakeClient({"content_category_counts": FakeResult(rows)})

        counts = SupabaseContentStore(client).category_counts(ContentKind.RECIPE)

        assert [(c.category, c.count) for c in counts] == [("desserts", 3), ("soups", 1)]
        assert client.queries[0].calls[0] == (
            "rpc", ("content_category_counts", {"p_kind": "recipes"}), {}
        )


class TestUpstreamFailures:
    @pytest.mark.parametrize(
        "error",
        [
            APIError({"message": "permission denied", "code": "42501"}),
            httpx.ConnectError("connection refused"),
            TimeoutError("timed out"),
        ],
    )
    def test_wrapped_in_upstream_error(self, error: Exception) -> None:
        client = FakeClient({"tags": error})

        with pytest.raises(UpstreamError) as exc_info:
            SupabaseContentStore(client).list_tags()

        assert exc_info.value.operation == "list tags"

    def test_insert_without_row(self) -> None:
        client = FakeClient({"tags": FakeResult([])})

        with pytest.raises(UpstreamError):
            SupabaseContentStore(client).insert_tag("Vegan", "vegan", "#000000")
