"""Client-side style pagination over an already fetched result set.

Pages are 1-based. Nothing here raises for out-of-range input: slices come
back empty and page changes outside ``1..total_pages`` are ignored.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Sequence, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Page(BaseModel):
    page: int
    pageSize: int
    totalPages: int
    totalRows: int
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    showing: str = ""

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.totalPages


def slice_page(rows: Sequence[T], page: int, page_size: int) -> List[T]:
    """Return the rows shown on ``page``."""
    if page_size <= 0 or page < 1:
        return []
    start = (page - 1) * page_size
    return list(rows[start : start + page_size])


def total_pages(total_rows: int, page_size: int) -> int:
    if page_size <= 0:
        return 0
    return math.ceil(total_rows / page_size)


def clamp_page(requested: int, current: int, pages: int) -> int:
    """Return ``requested`` when it is a valid page, otherwise stay on ``current``."""
    if 1 <= requested <= pages:
        return requested
    return current


def showing_range(page: int, page_size: int, total_rows: int) -> str:
    if total_rows == 0:
        return ""
    start = (page - 1) * page_size + 1
    end = min(page * page_size, total_rows)
    return f"Showing {start}-{end} of {total_rows}"


def paginate(rows: Sequence[Dict[str, Any]], page: int, page_size: int) -> Page:
    """Build a :class:`Page`, falling back to page 1 for out-of-range requests."""
    pages = total_pages(len(rows), page_size)
    current = clamp_page(page, 1, pages)
    return Page(
        page=current,
        pageSize=page_size,
        totalPages=pages,
        totalRows=len(rows),
        rows=slice_page(rows, current, page_size),
        showing=showing_range(current, page_size, len(rows)),
    )
