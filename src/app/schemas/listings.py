# src/app/schemas/listings.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from src.app.domain.models import BlogCriteria, BlogPost, Recipe, RecipeCriteria


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


class RecipeResponse(BaseModel):
    id: str
    slug: str
    title: str
    description: str = ""
    category: str
    cuisine: str
    difficulty: str
    servings: int
    prepTime: int = 0
    cookTime: int = 0
    totalTime: int = 0
    published: bool = False
    featured: bool = False
    views: int = 0
    authorId: Optional[str] = None
    tagIds: list[str] = Field(default_factory=list)
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    @classmethod
    def from_domain(cls, recipe: Recipe) -> "RecipeResponse":
        return cls(
            id=recipe.id,
            slug=recipe.slug,
            title=recipe.title,
            description=recipe.description,
            category=recipe.category,
            cuisine=recipe.cuisine,
            difficulty=recipe.difficulty,
            servings=recipe.servings,
            prepTime=recipe.prep_time,
            cookTime=recipe.cook_time,
            totalTime=recipe.total_time,
            published=recipe.published,
            featured=recipe.featured,
            views=recipe.views,
            authorId=recipe.author_id,
            tagIds=list(recipe.tag_ids),
            createdAt=_iso(recipe.created_at),
            updatedAt=_iso(recipe.updated_at),
        )


class BlogPostResponse(BaseModel):
    id: str
    slug: str
    title: str
    excerpt: str = ""
    content: Optional[str] = None
    status: str
    category: str
    featured: bool = False
    views: int = 0
    authorId: Optional[str] = None
    tagIds: list[str] = Field(default_factory=list)
    publishedAt: Optional[str] = None
    updatedAt: Optional[str] = None

    @classmethod
    def from_domain(cls, post: BlogPost, include_content: bool = False) -> "BlogPostResponse":
        return cls(
            id=post.id,
            slug=post.slug,
            title=post.title,
            excerpt=post.excerpt,
            content=post.content if include_content else None,
            status=post.status.value,
            category=post.category,
            featured=post.featured,
            views=post.views,
            authorId=post.author_id,
            tagIds=list(post.tag_ids),
            publishedAt=_iso(post.published_at),
            updatedAt=_iso(post.updated_at),
        )


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int
    hasNext: bool
    hasPrev: bool


class RecipeFilters(BaseModel):
    q: Optional[str] = None
    category: str = "all"
    difficulty: str = "all"
    maxTime: int = 0
    servings: int = 0
    tags: list[str] = Field(default_factory=list)
    sort: str = "newest"
    view: str = "grid"

    @classmethod
    def from_criteria(cls, criteria: RecipeCriteria) -> "RecipeFilters":
        return cls(
            q=criteria.query,
            category=criteria.category,
            difficulty=criteria.difficulty,
            maxTime=criteria.max_time,
            servings=criteria.servings,
            tags=sorted(criteria.tags),
            sort=criteria.sort,
            view=criteria.view,
        )


class BlogFilters(BaseModel):
    q: Optional[str] = None
    category: str = "all"
    tags: list[str] = Field(default_factory=list)
    sort: str = "newest"

    @classmethod
    def from_criteria(cls, criteria: BlogCriteria) -> "BlogFilters":
        return cls(
            q=criteria.query,
            category=criteria.category,
            tags=sorted(criteria.tags),
            sort=criteria.sort,
        )


class RecipeListResponse(BaseModel):
    items: list[RecipeResponse] = Field(default_factory=list)
    pagination: PaginationResponse
    filters: RecipeFilters


class BlogListResponse(BaseModel):
    items: list[BlogPostResponse] = Field(default_factory=list)
    pagination: PaginationResponse
    filters: BlogFilters
