from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from src.app.domain.errors import NotFoundError, UpstreamError
from src.app.domain.filters import (
    Equals,
    FilterExpr,
    QuerySpec,
    Range,
    SubstringAnyOf,
    TagsAll,
)
from src.app.domain.models import BlogPost, BlogStatus, CategoryCount, ContentKind, Recipe, Tag
from src.app.infra.db.base import ContentStore

logger = logging.getLogger(__name__)

RECIPES_TABLE = "recipes"
POSTS_TABLE = "blog_posts"
TAGS_TABLE = "tags"

_UPSTREAM_ERRORS = (APIError, httpx.HTTPError, ConnectionError, TimeoutError)

RECIPE_COLUMNS = (
    "slug", "title", "description", "category", "cuisine", "difficulty", "servings",
    "prep_time", "cook_time", "published", "featured", "tag_ids",
)
POST_COLUMNS = ("slug", "title", "excerpt", "content", "category", "featured", "tag_ids")


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _safe_int(value: object, default: int = 0) -> int:
    return int(value) if value else default


def _id_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


def _row_to_recipe(row: dict[str, Any]) -> Recipe:
    return Recipe(
        id=str(row["id"]),
        slug=str(row["slug"]),
        title=str(row["title"]),
        description=row.get("description") or "",
        category=row.get("category") or "main-course",
        cuisine=row.get("cuisine") or "other",
        difficulty=row.get("difficulty") or "medium",
        servings=_safe_int(row.get("servings"), 4),
        prep_time=_safe_int(row.get("prep_time")),
        cook_time=_safe_int(row.get("cook_time")),
        published=bool(row.get("published")),
        featured=bool(row.get("featured")),
        views=_safe_int(row.get("views")),
        author_id=str(row["author_id"]) if row.get("author_id") else None,
        tag_ids=_id_list(row.get("tag_ids")),
        created_at=_parse_datetime(row.get("created_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


def _row_to_post(row: dict[str, Any]) -> BlogPost:
    return BlogPost(
        id=str(row["id"]),
        slug=str(row["slug"]),
        title=str(row["title"]),
        excerpt=row.get("excerpt") or "",
        content=row.get("content") or "",
        status=BlogStatus(str(row.get("status") or BlogStatus.DRAFT.value)),
        category=row.get("category") or "development",
        featured=bool(row.get("featured")),
        views=_safe_int(row.get("views")),
        author_id=str(row["author_id"]) if row.get("author_id") else None,
        tag_ids=_id_list(row.get("tag_ids")),
        published_at=_parse_datetime(row.get("published_at")),
        created_at=_parse_datetime(row.get("created_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


def _row_to_tag(row: dict[str, Any]) -> Tag:
    return Tag(
        id=str(row["id"]),
        name=str(row["name"]),
        slug=str(row["slug"]),
        count=_safe_int(row.get("count")),
        color=row.get("color") or "#000000",
        created_at=_parse_datetime(row.get("created_at")),
    )


def _recipe_to_row(recipe: Recipe) -> dict[str, Any]:
    row: dict[str, Any] = {name: getattr(recipe, name) for name in RECIPE_COLUMNS}
    row["tag_ids"] = list(dict.fromkeys(recipe.tag_ids))
    row["author_id"] = recipe.author_id
    if recipe.id:
        row["id"] = recipe.id
    return row


def _post_to_row(post: BlogPost) -> dict[str, Any]:
    row: dict[str, Any] = {name: getattr(post, name) for name in POST_COLUMNS}
    row["tag_ids"] = list(dict.fromkeys(post.tag_ids))
    row["author_id"] = post.author_id
    row["status"] = post.status.value
    row["published_at"] = post.published_at.isoformat() if post.published_at else None
    if post.id:
        row["id"] = post.id
    return row


def _column_changes(changes: dict, columns: tuple[str, ...]) -> dict[str, Any]:
    payload = {k: v for k, v in changes.items() if k in columns}
    if "tag_ids" in payload:
        payload["tag_ids"] = list(dict.fromkeys(payload["tag_ids"]))
    return payload


def like_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def ilike_pattern(text: str) -> str:
    """
    Quoted PostgREST value matching `text` anywhere in the column.
    LIKE metacharacters in the user text are matched literally.
    """
    like = like_escape(text)
    quoted = like.replace("\\", "\\\\").replace('"', '\\"')
    return f'"*{quoted}*"'


def apply_filters(query: Any, filters: Iterable[FilterExpr]) -> Any:
    """Translate filter expressions onto a PostgREST request builder."""
    for expr in filters:
        if isinstance(expr, Equals):
            query = query.eq(expr.field, expr.value)
        elif isinstance(expr, Range):
            if expr.gte is not None:
                query = query.gte(expr.field, expr.gte)
            if expr.lte is not None:
                query = query.lte(expr.field, expr.lte)
        elif isinstance(expr, SubstringAnyOf):
            pattern = ilike_pattern(expr.text)
            query = query.or_(",".join(f"{name}.ilike.{pattern}" for name in expr.fields))
        elif isinstance(expr, TagsAll):
            # array containment (cs): every requested id must be present
            query = query.contains("tag_ids", sorted(expr.tag_ids))
        else:
            raise TypeError(f"Unsupported filter expression: {expr!r}")
    return query


class SupabaseContentStore(ContentStore):
    def __init__(self, client: Client):
        self._client = client
        logger.info("SupabaseContentStore initialized")

    def _execute(self, operation: str, build: Callable[[], Any]) -> Any:
        try:
            return build().execute()
        except _UPSTREAM_ERRORS as error:
            logger.error("Supabase error during %s: %s", operation, error)
            raise UpstreamError(operation, str(error)) from error

    def _find(self, table: str, spec: QuerySpec) -> list[dict[str, Any]]:
        def build() -> Any:
            query = apply_filters(self._client.table(table).select("*"), spec.filters)
            query = query.order(spec.order_by.field, desc=spec.order_by.descending)
            return query.range(spec.offset, spec.offset + spec.limit - 1)

        result = self._execute(f"find {table}", build)
        return result.data or []

    def _count(self, table: str, filters: tuple[FilterExpr, ...]) -> int:
        result = self._execute(
            f"count {table}",
            lambda: apply_filters(
                self._client.table(table).select("id", count="exact"), filters
            ).limit(1),
        )
        return getattr(result, "count", 0) or 0

    def _get_one(self, table: str, column: str, value: str) -> Optional[dict[str, Any]]:
        result = self._execute(
            f"get {table}",
            lambda: self._client.table(table).select("*").eq(column, value).limit(1),
        )
        rows = result.data or []
        return rows[0] if rows else None

    def _update(self, table: str, row_id: str, payload: dict[str, Any]) -> Optional[dict[str, Any]]:
        result = self._execute(
            f"update {table}",
            lambda: self._client.table(table).update(payload).eq("id", row_id),
        )
        rows = result.data or []
        return rows[0] if rows else None

    def _insert(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        result = self._execute(
            f"insert {table}", lambda: self._client.table(table).insert(payload)
        )
        rows = result.data or []
        if not rows:
            raise UpstreamError(f"insert {table}", "no row returned")
        return rows[0]

    def _delete(self, table: str, row_id: str) -> bool:
        result = self._execute(
            f"delete {table}", lambda: self._client.table(table).delete().eq("id", row_id)
        )
        return bool(result.data)

    # --- recipes -----------------------------------------------------------

    def find_recipes(self, spec: QuerySpec) -> list[Recipe]:
        return [_row_to_recipe(row) for row in self._find(RECIPES_TABLE, spec)]

    def count_recipes(self, filters: tuple[FilterExpr, ...]) -> int:
        return self._count(RECIPES_TABLE, filters)

    def get_recipe(self, recipe_id: str) -> Optional[Recipe]:
        row = self._get_one(RECIPES_TABLE, "id", recipe_id)
        return _row_to_recipe(row) if row else None

    def get_recipe_by_slug(self, slug: str) -> Optional[Recipe]:
        row = self._get_one(RECIPES_TABLE, "slug", slug)
        return _row_to_recipe(row) if row else None

    def set_recipe_published(self, recipe_id: str, published: bool) -> Optional[Recipe]:
        row = self._update(RECIPES_TABLE, recipe_id, {"published": published})
        return _row_to_recipe(row) if row else None

    def insert_recipe(self, recipe: Recipe) -> Recipe:
        return _row_to_recipe(self._insert(RECIPES_TABLE, _recipe_to_row(recipe)))

    def update_recipe(self, recipe_id: str, changes: dict) -> Optional[Recipe]:
        payload = _column_changes(changes, RECIPE_COLUMNS)
        if not payload:
            return self.get_recipe(recipe_id)
        row = self._update(RECIPES_TABLE, recipe_id, payload)
        return _row_to_recipe(row) if row else None

    def delete_recipe(self, recipe_id: str) -> bool:
        return self._delete(RECIPES_TABLE, recipe_id)

    # --- blog posts --------------------------------------------------------

    def find_posts(self, spec: QuerySpec) -> list[BlogPost]:
        return [_row_to_post(row) for row in self._find(POSTS_TABLE, spec)]

    def count_posts(self, filters: tuple[FilterExpr, ...]) -> int:
        return self._count(POSTS_TABLE, filters)

    def get_post(self, post_id: str) -> Optional[BlogPost]:
        row = self._get_one(POSTS_TABLE, "id", post_id)
        return _row_to_post(row) if row else None

    def get_post_by_slug(self, slug: str) -> Optional[BlogPost]:
        row = self._get_one(POSTS_TABLE, "slug", slug)
        return _row_to_post(row) if row else None

    def mark_post_published(self, post_id: str, published_at: datetime) -> Optional[BlogPost]:
        row = self._update(
            POSTS_TABLE,
            post_id,
            {"status": BlogStatus.PUBLISHED.value, "published_at": published_at.isoformat()},
        )
        return _row_to_post(row) if row else None

    def increment_post_views(self, post_id: str) -> int:
        result = self._execute(
            "increment_post_views",
            lambda: self._client.rpc("increment_post_views", {"p_post_id": post_id}),
        )
        return _safe_int(result.data)

    def insert_post(self, post: BlogPost) -> BlogPost:
        return _row_to_post(self._insert(POSTS_TABLE, _post_to_row(post)))

    def update_post(self, post_id: str, changes: dict) -> Optional[BlogPost]:
        payload = _column_changes(changes, POST_COLUMNS)
        if not payload:
            return self.get_post(post_id)
        row = self._update(POSTS_TABLE, post_id, payload)
        return _row_to_post(row) if row else None

    def delete_post(self, post_id: str) -> bool:
        return self._delete(POSTS_TABLE, post_id)

    # --- shared ------------------------------------------------------------

    def content_slug_exists(
        self, kind: ContentKind, slug: str, exclude_id: Optional[str] = None
    ) -> bool:
        table = RECIPES_TABLE if kind == ContentKind.RECIPE else POSTS_TABLE

        def build() -> Any:
            query = self._client.table(table).select("id").eq("slug", slug)
            if exclude_id:
                query = query.neq("id", exclude_id)
            return query.limit(1)

        result = self._execute(f"{table} slug lookup", build)
        return bool(result.data)

    def category_counts(self, kind: ContentKind) -> list[CategoryCount]:
        result = self._execute(
            "content_category_counts",
            lambda: self._client.rpc("content_category_counts", {"p_kind": kind.value}),
        )
        return [
            CategoryCount(category=str(row["category"]), count=_safe_int(row.get("count")))
            for row in result.data or []
        ]

    # --- tag references ----------------------------------------------------

    def set_entity_tags(self, kind: ContentKind, entity_id: str, tag_ids: list[str]) -> bool:
        table = RECIPES_TABLE if kind == ContentKind.RECIPE else POSTS_TABLE
        row = self._update(table, entity_id, {"tag_ids": list(dict.fromkeys(tag_ids))})
        return row is not None

    def count_tag_references(self, tag_id: str) -> int:
        total = 0
        for table in (RECIPES_TABLE, POSTS_TABLE):
            result = self._execute(
                f"count {table} tag refs",
                lambda table=table: self._client.table(table)
                .select("id", count="exact")
                .contains("tag_ids", [tag_id])
                .limit(1),
            )
            total += getattr(result, "count", 0) or 0
        return total

    def recount_tag(self, tag_id: str) -> int:
        result = self._execute(
            "recount_tag",
            lambda: self._client.rpc("recount_tag", {"p_tag_id": tag_id}),
        )
        return _safe_int(result.data)

    def merge_tags(self, source_id: str, target_id: str) -> Tag:
        # single SQL function, runs in one transaction
        result = self._execute(
            "merge_tags",
            lambda: self._client.rpc(
                "merge_tags", {"p_source_id": source_id, "p_target_id": target_id}
            ),
        )
        rows = result.data or []
        if isinstance(rows, dict):
            rows = [rows]
        if not rows:
            raise NotFoundError("Tag", f"{source_id} -> {target_id}")
        logger.info("supabase_store.merge_done source=%s target=%s", source_id, target_id)
        return _row_to_tag(rows[0])

    # --- tags --------------------------------------------------------------

    def list_tags(self) -> list[Tag]:
        result = self._execute(
            "list tags", lambda: self._client.table(TAGS_TABLE).select("*").order("name")
        )
        return [_row_to_tag(row) for row in result.data or []]

    def get_tag(self, tag_id: str) -> Optional[Tag]:
        row = self._get_one(TAGS_TABLE, "id", tag_id)
        return _row_to_tag(row) if row else None

    def get_tag_by_slug(self, slug: str) -> Optional[Tag]:
        row = self._get_one(TAGS_TABLE, "slug", slug)
        return _row_to_tag(row) if row else None

    def get_tags_by_slugs(self, slugs: Iterable[str]) -> list[Tag]:
        wanted = sorted(set(slugs))
        if not wanted:
            return []
        result = self._execute(
            "get tags by slug",
            lambda: self._client.table(TAGS_TABLE).select("*").in_("slug", wanted),
        )
        return [_row_to_tag(row) for row in result.data or []]

    def slug_exists(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        def build() -> Any:
            query = self._client.table(TAGS_TABLE).select("id").eq("slug", slug)
            if exclude_id:
                query = query.neq("id", exclude_id)
            return query.limit(1)

        result = self._execute("tag slug lookup", build)
        return bool(result.data)

    def insert_tag(self, name: str, slug: str, color: str) -> Tag:
        payload = {"name": name, "slug": slug, "color": color, "count": 0}
        result = self._execute(
            "insert tag", lambda: self._client.table(TAGS_TABLE).insert(payload)
        )
        rows = result.data or []
        if not rows:
            raise UpstreamError("insert tag", "no row returned")
        return _row_to_tag(rows[0])

    def upsert_tag(self, name: str, slug: str, color: str) -> Tag:
        payload = {"name": name, "slug": slug, "color": color, "count": 0}
        self._execute(
            "upsert tag",
            lambda: self._client.table(TAGS_TABLE).upsert(
                payload, on_conflict="slug", ignore_duplicates=True
            ),
        )
        tag = self.get_tag_by_slug(slug)
        if tag is None:
            raise UpstreamError("upsert tag", f"tag {slug} missing after upsert")
        return tag

    def update_tag(self, tag_id: str, changes: dict) -> Optional[Tag]:
        payload = {k: v for k, v in changes.items() if k in ("name", "slug", "color")}
        row = self._update(TAGS_TABLE, tag_id, payload)
        return _row_to_tag(row) if row else None

    def delete_tag(self, tag_id: str) -> bool:
        return self._delete(TAGS_TABLE, tag_id)

    def popular_tags(self, limit: int = 20) -> list[Tag]:
        result = self._execute(
            "popular tags",
            lambda: self._client.table(TAGS_TABLE)
            .select("*")
            .gt("count", 0)
            .order("count", desc=True)
            .limit(limit),
        )
        return [_row_to_tag(row) for row in result.data or []]

    def search_tags(self, query: str, limit: int = 10) -> list[Tag]:
        pattern = f"*{like_escape(query.strip())}*"
        result = self._execute(
            "search tags",
            lambda: self._client.table(TAGS_TABLE)
            .select("*")
            .ilike("name", pattern)
            .order("count", desc=True)
            .order("name")
            .limit(limit),
        )
        return [_row_to_tag(row) for row in result.data or []]
