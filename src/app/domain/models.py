# src/app/domain/models.py
"""
Domain models for the recipe catalog, the blog and the tag registry.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class BlogStatus(str, Enum):
    """Publication status of a blog post. Normal flow is DRAFT -> PUBLISHED."""
    DRAFT = "draft"
    PUBLISHED = "published"


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class ContentKind(str, Enum):
    """Entity kinds that can reference tags."""
    RECIPE = "recipes"
    BLOG_POST = "blog"


@dataclass
class Tag:
    id: str
    name: str
    slug: str
    count: int = 0
    color: str = "#000000"
    created_at: Optional[datetime] = None


@dataclass
class Recipe:
    """
    A recipe in the catalog.
    Only published recipes are visible to public listings.
    """
    id: str
    slug: str
    title: str
    description: str = ""
    category: str = "main-course"
    cuisine: str = "other"
    difficulty: str = "medium"
    servings: int = 4
    prep_time: int = 0  # minutes
    cook_time: int = 0  # minutes
    published: bool = False
    featured: bool = False
    views: int = 0
    author_id: Optional[str] = None
    tag_ids: list[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def total_time(self) -> int:
        return self.prep_time + self.cook_time

    @property
    def is_visible(self) -> bool:
        return self.published


@dataclass
class BlogPost:
    """A blog post. Views only ever go up."""
    id: str
    slug: str
    title: str
    excerpt: str = ""
    content: str = ""
    status: BlogStatus = BlogStatus.DRAFT
    category: str = "development"
    featured: bool = False
    views: int = 0
    author_id: Optional[str] = None
    tag_ids: list[str] = field(default_factory=list)
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_visible(self) -> bool:
        return self.status == BlogStatus.PUBLISHED


@dataclass
class RateLimitWindow:
    """Counter for one caller key inside one fixed window."""
    key: str
    count: int
    reset_at: int  # epoch milliseconds


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int  # epoch milliseconds


@dataclass
class RecipeCriteria:
    """Normalized filters for the public recipe listing."""
    category: str = "all"
    difficulty: str = "all"
    max_time: int = 0
    servings: int = 0
    tags: frozenset[str] = frozenset()
    sort: str = "newest"
    page: int = 1
    view: str = "grid"
    query: Optional[str] = None

    @property
    def has_active_filters(self) -> bool:
        return (
            self.category != "all"
            or self.difficulty != "all"
            or self.max_time > 0
            or self.servings > 0
            or bool(self.tags)
        )


@dataclass
class BlogCriteria:
    """Normalized filters for the public blog listing."""
    category: str = "all"
    tags: frozenset[str] = frozenset()
    sort: str = "newest"
    page: int = 1
    query: Optional[str] = None


@dataclass
class TagStats:
    total_tags: int
    active_tags: int
    top_tags: list[Tag]


@dataclass
class CategoryCount:
    """Number of visible items in one category."""
    category: str
    count: int


@dataclass
class ContentStats:
    total_recipes: int
    published_recipes: int
    total_posts: int
    published_posts: int
    total_tags: int
