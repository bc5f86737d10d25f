# src/app/schemas/content.py
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel

from src.app.domain.models import CategoryCount, ContentStats


class RecipeInput(BaseModel):
    """Admin recipe payload. Omitted fields keep their current (or default) value."""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    cuisine: Optional[str] = None
    difficulty: Optional[str] = None
    servings: Optional[int] = None
    prepTime: Optional[int] = None
    cookTime: Optional[int] = None
    published: Optional[bool] = None
    featured: Optional[bool] = None
    tagIds: Optional[list[str]] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class BlogPostInput(BaseModel):
    title: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    featured: Optional[bool] = None
    tagIds: Optional[list[str]] = None
    # only read on create; publishing an existing draft goes through /publish
    status: Literal["draft", "published"] = "draft"

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"status"})


class CategoryCountResponse(BaseModel):
    category: str
    count: int

    @classmethod
    def from_domain(cls, item: CategoryCount) -> "CategoryCountResponse":
        return cls(category=item.category, count=item.count)


class AdminStatsResponse(BaseModel):
    totalRecipes: int
    publishedRecipes: int
    totalBlogPosts: int
    publishedBlogPosts: int
    totalTags: int

    @classmethod
    def from_domain(cls, stats: ContentStats) -> "AdminStatsResponse":
        return cls(
            totalRecipes=stats.total_recipes,
            publishedRecipes=stats.published_recipes,
            totalBlogPosts=stats.total_posts,
            publishedBlogPosts=stats.published_posts,
            totalTags=stats.total_tags,
        )
