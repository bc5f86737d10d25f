# src/app/schemas/tags.py
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from src.app.domain.models import Tag, TagStats
from src.app.schemas.listings import BlogPostResponse, RecipeResponse

FailureCode = Literal["validation", "unauthorized", "not_found", "in_use", "upstream", "error"]


class TagResponse(BaseModel):
    id: str
    name: str
    slug: str
    count: int = 0
    color: str = "#000000"
    createdAt: Optional[str] = None

    @classmethod
    def from_domain(cls, tag: Tag) -> "TagResponse":
        return cls(
            id=tag.id,
            name=tag.name,
            slug=tag.slug,
            count=tag.count,
            color=tag.color,
            createdAt=tag.created_at.isoformat() if tag.created_at else None,
        )


class TagStatsResponse(BaseModel):
    totalTags: int
    activeTags: int
    topTags: list[TagResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, stats: TagStats) -> "TagStatsResponse":
        return cls(
            totalTags=stats.total_tags,
            activeTags=stats.active_tags,
            topTags=[TagResponse.from_domain(t) for t in stats.top_tags],
        )


class MutationResult(BaseModel):
    """Uniform outcome of a tag mutation. Callers check `success`."""
    success: bool
    error: Optional[str] = None
    field: Optional[str] = None
    code: Optional[FailureCode] = None
    message: Optional[str] = None
    tag: Optional[TagResponse] = None
    tags: Optional[list[TagResponse]] = None

    @classmethod
    def ok(cls, tag: Optional[Tag] = None, message: Optional[str] = None) -> "MutationResult":
        return cls(
            success=True,
            message=message,
            tag=TagResponse.from_domain(tag) if tag else None,
        )

    @classmethod
    def fail(
        cls,
        error: str,
        code: FailureCode = "error",
        field: Optional[str] = None,
    ) -> "MutationResult":
        return cls(success=False, error=error, code=code, field=field)


class TagDetailResponse(BaseModel):
    tag: TagResponse
    recipes: list[RecipeResponse] = Field(default_factory=list)
    posts: list[BlogPostResponse] = Field(default_factory=list)
