# src/app/domain/filters.py
"""
Filter expressions handed to a ContentStore.

The query builder only produces these tagged values; each store adapter
translates them into its own query language (PostgREST filters for Supabase,
plain predicates for the in-memory store).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class Range:
    """Inclusive bounds; a None bound is open."""
    field: str
    gte: Optional[int] = None
    lte: Optional[int] = None


@dataclass(frozen=True)
class SubstringAnyOf:
    """Case-insensitive substring match; any one of the fields is enough."""
    fields: tuple[str, ...]
    text: str


@dataclass(frozen=True)
class TagsAll:
    """The row must reference every one of these tag ids."""
    tag_ids: frozenset[str]


FilterExpr = Union[Equals, Range, SubstringAnyOf, TagsAll]


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class QuerySpec:
    """A bounded, filtered read against one content table."""
    filters: tuple[FilterExpr, ...]
    order_by: OrderBy
    offset: int = 0
    limit: int = 12

