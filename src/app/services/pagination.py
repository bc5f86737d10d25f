# src/app/services/pagination.py
from __future__ import annotations

import math
from dataclasses import dataclass

PUBLIC_PAGE_SIZE = 12
MAX_PAGE_SIZE = 50


@dataclass(frozen=True)
class PageWindow:
    """Offset/limit pair for one 1-indexed page."""
    page: int
    offset: int
    limit: int

    @classmethod
    def for_page(cls, page: int, page_size: int = PUBLIC_PAGE_SIZE) -> "PageWindow":
        size = clamp_page_size(page_size)
        current = max(1, page)
        return cls(page=current, offset=(current - 1) * size, limit=size)


@dataclass(frozen=True)
class Pagination:
    page: int
    page_size: int
    total: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def is_out_of_range(self) -> bool:
        return self.page > self.total_pages

    @classmethod
    def from_total(cls, total: int, page: int, page_size: int = PUBLIC_PAGE_SIZE) -> "Pagination":
        size = clamp_page_size(page_size)
        return cls(
            page=max(1, page),
            page_size=size,
            total=max(0, total),
            total_pages=total_pages(total, size),
        )

    def as_dict(self) -> dict[str, int | bool]:
        return {
            "page": self.page,
            "limit": self.page_size,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


def clamp_page_size(page_size: int) -> int:
    return min(MAX_PAGE_SIZE, max(1, page_size))


def total_pages(total: int, page_size: int) -> int:
    if total <= 0:
        return 0
    return math.ceil(total / page_size)
