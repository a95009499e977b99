"""
forum/listing.py -- Listing engine: sort orders and pagination math.

The SQL itself runs in ForumStore.list_posts(); this module owns the rules so
they can be tested without a database:

  Sort keys
    latest   -- pinned posts first, then newest first
    popular  -- most likes first
    views    -- most views first
    comments -- most comments first
  Every non-latest order breaks ties by created_at descending, then by id
  descending so two posts created in the same instant still have a stable
  order across pages.

  Board selector
    CROSS_BOARD ("best") lists published posts from every board.

  Pagination
    total_pages = ceil(total / page_size). A page past the end is not an
    error; it comes back empty with has_next False and has_prev True.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from sqlalchemy import Table

from core.errors import ValidationError

CROSS_BOARD = "best"

MAX_PAGE_SIZE = 100

T = TypeVar("T")


class SortKey(str, Enum):
    LATEST = "latest"
    POPULAR = "popular"
    VIEWS = "views"
    COMMENTS = "comments"


@dataclass(frozen=True)
class Pagination:
    current_page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next: bool
    has_prev: bool


@dataclass
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    pagination: Pagination | None = None


def validate_window(page: int, page_size: int, max_page_size: int = MAX_PAGE_SIZE) -> None:
    """Raise ValidationError for a page below 1 or a page size outside 1..max."""
    if page < 1:
        raise ValidationError("page must be 1 or greater.")
    if not 1 <= page_size <= max_page_size:
        raise ValidationError(f"page_size must be between 1 and {max_page_size}.")


def paginate(total: int, page: int, page_size: int) -> Pagination:
    """Compute pagination metadata for a result set of total items."""
    total_pages = math.ceil(total / page_size) if total else 0
    return Pagination(
        current_page=page,
        page_size=page_size,
        total_items=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


def offset_for(page: int, page_size: int) -> int:
    return (page - 1) * page_size


def order_by(sort: SortKey, posts: Table) -> list:
    """Return ORDER BY clauses for sort against the posts table."""
    tie_break = [posts.c.created_at.desc(), posts.c.id.desc()]
    if sort is SortKey.POPULAR:
        return [posts.c.likes.desc(), *tie_break]
    if sort is SortKey.VIEWS:
        return [posts.c.views.desc(), *tie_break]
    if sort is SortKey.COMMENTS:
        return [posts.c.comment_count.desc(), *tie_break]
    return [posts.c.is_pinned.desc(), *tie_break]
