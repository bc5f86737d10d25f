# src/app/infra/db/base.py
"""
Abstract capability interfaces for persistence and identity.
Routes and services only depend on these; tests inject in-memory versions.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional

from src.app.domain.filters import FilterExpr, QuerySpec
from src.app.domain.models import BlogPost, CategoryCount, ContentKind, Recipe, Tag
from src.app.schemas.auth import CurrentUser


class ContentStore(ABC):
    """
    Abstract interface for recipes, blog posts and tags.

    Implementations:
    - SupabaseContentStore: Postgres through the Supabase client
    - InMemoryContentStore: process-local store for local runs and tests
    """

    # --- recipes -----------------------------------------------------------

    @abstractmethod
    def find_recipes(self, spec: QuerySpec) -> list[Recipe]:
        """
        Run a bounded, filtered read against recipes.

        Args:
            spec: Filters, ordering and offset/limit

        Returns:
            Matching recipes in the requested order
        """
        pass

    @abstractmethod
    def count_recipes(self, filters: tuple[FilterExpr, ...]) -> int:
        """Count recipes matching the filters, ignoring any window."""
        pass

    @abstractmethod
    def get_recipe(self, recipe_id: str) -> Optional[Recipe]:
        pass

    @abstractmethod
    def get_recipe_by_slug(self, slug: str) -> Optional[Recipe]:
        pass

    @abstractmethod
    def set_recipe_published(self, recipe_id: str, published: bool) -> Optional[Recipe]:
        """
        Flip the published flag of a recipe.

        Returns:
            The updated recipe, or None if it does not exist
        """
        pass

    @abstractmethod
    def insert_recipe(self, recipe: Recipe) -> Recipe:
        """
        Persist a new recipe. An empty id and missing timestamps are filled
        in by the store.

        Returns:
            The stored recipe
        """
        pass

    @abstractmethod
    def update_recipe(self, recipe_id: str, changes: dict) -> Optional[Recipe]:
        """
        Apply column changes (keyed by Recipe field name) to a recipe.

        Returns:
            The updated recipe, or None if it does not exist
        """
        pass

    @abstractmethod
    def delete_recipe(self, recipe_id: str) -> bool:
        pass

    # --- blog posts --------------------------------------------------------

    @abstractmethod
    def find_posts(self, spec: QuerySpec) -> list[BlogPost]:
        pass

    @abstractmethod
    def count_posts(self, filters: tuple[FilterExpr, ...]) -> int:
        pass

    @abstractmethod
    def get_post(self, post_id: str) -> Optional[BlogPost]:
        pass

    @abstractmethod
    def get_post_by_slug(self, slug: str) -> Optional[BlogPost]:
        pass

    @abstractmethod
    def mark_post_published(self, post_id: str, published_at: datetime) -> Optional[BlogPost]:
        """
        Move a post to PUBLISHED and stamp published_at.

        Returns:
            The updated post, or None if it does not exist
        """
        pass

    @abstractmethod
    def increment_post_views(self, post_id: str) -> int:
        """
        Atomically add one to the view counter.

        Returns:
            The new counter value (0 if the post does not exist)
        """
        pass

    @abstractmethod
    def insert_post(self, post: BlogPost) -> BlogPost:
        pass

    @abstractmethod
    def update_post(self, post_id: str, changes: dict) -> Optional[BlogPost]:
        pass

    @abstractmethod
    def delete_post(self, post_id: str) -> bool:
        pass

    # --- shared ------------------------------------------------------------

    @abstractmethod
    def content_slug_exists(
        self, kind: ContentKind, slug: str, exclude_id: Optional[str] = None
    ) -> bool:
        """True if another recipe (or post, per kind) already uses the slug."""
        pass

    @abstractmethod
    def category_counts(self, kind: ContentKind) -> list[CategoryCount]:
        """Visible items per category, largest first, then by category name."""
        pass

    # --- tag references ----------------------------------------------------

    @abstractmethod
    def set_entity_tags(self, kind: ContentKind, entity_id: str, tag_ids: list[str]) -> bool:
        """
        Replace the ordered tag list of a recipe or post.

        Returns:
            True if the entity exists and was updated
        """
        pass

    @abstractmethod
    def count_tag_references(self, tag_id: str) -> int:
        """Count recipes and posts referencing the tag, whatever their status."""
        pass

    @abstractmethod
    def recount_tag(self, tag_id: str) -> int:
        """
        Recompute and persist the usage count of a tag from the published
        recipes and posts that reference it.

        Returns:
            The new count
        """
        pass

    @abstractmethod
    def merge_tags(self, source_id: str, target_id: str) -> Tag:
        """
        Atomically move every reference from source to target, recount both
        and delete source. Partial reassignment is never observable.

        Returns:
            The target tag after the merge

        Raises:
            NotFoundError: If either tag does not exist
        """
        pass

    # --- tags --------------------------------------------------------------

    @abstractmethod
    def list_tags(self) -> list[Tag]:
        """All tags ordered by name."""
        pass

    @abstractmethod
    def get_tag(self, tag_id: str) -> Optional[Tag]:
        pass

    @abstractmethod
    def get_tag_by_slug(self, slug: str) -> Optional[Tag]:
        pass

    @abstractmethod
    def get_tags_by_slugs(self, slugs: Iterable[str]) -> list[Tag]:
        pass

    @abstractmethod
    def slug_exists(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        pass

    @abstractmethod
    def insert_tag(self, name: str, slug: str, color: str) -> Tag:
        pass

    @abstractmethod
    def upsert_tag(self, name: str, slug: str, color: str) -> Tag:
        """
        Return the tag with this slug, creating it if needed.
        Never modifies an existing tag.
        """
        pass

    @abstractmethod
    def update_tag(self, tag_id: str, changes: dict) -> Optional[Tag]:
        pass

    @abstractmethod
    def delete_tag(self, tag_id: str) -> bool:
        pass

    @abstractmethod
    def popular_tags(self, limit: int = 20) -> list[Tag]:
        """Tags with count > 0, most used first."""
        pass

    @abstractmethod
    def search_tags(self, query: str, limit: int = 10) -> list[Tag]:
        """Case-insensitive name search ordered by count desc, then name."""
        pass


class IdentityProvider(ABC):
    """Resolves a bearer token to the calling user."""

    @abstractmethod
    def current_user(self, token: Optional[str]) -> Optional[CurrentUser]:
        """
        Args:
            token: Raw bearer token, or None when the request carried none

        Returns:
            The authenticated user, or None when the token is missing or invalid
        """
        pass
