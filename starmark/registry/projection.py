from __future__ import annotations

import math
from collections.abc import Sequence

from ..resolver import parse_position
from .types import FavoriteRecord, ProjectedPage


def _sort_key(record: FavoriteRecord) -> tuple[int, int]:
    position = parse_position(record.get("messageRef"))
    if position is None:
        return (1, 0)
    return (0, -position)


def sort_records(records: Sequence[FavoriteRecord]) -> list[FavoriteRecord]:
    # sorted() is stable, so equal refs keep insertion order.
    return sorted(records, key=_sort_key)


def total_pages(count: int, page_size: int) -> int:
    return max(1, math.ceil(count / page_size))


def clamp_page(page: int, count: int, page_size: int) -> int:
    return min(max(1, page), total_pages(count, page_size))


def project(records: Sequence[FavoriteRecord], page: int, page_size: int) -> ProjectedPage:
    """Newest-message-first page of ``records``. The input is never mutated."""

    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    ordered = sort_records(records)
    count = len(ordered)
    pages = total_pages(count, page_size)
    current = clamp_page(page, count, page_size)
    start = (current - 1) * page_size
    end = min(current * page_size, count)
    return ProjectedPage(
        items=tuple(ordered[start:end]),
        total_count=count,
        total_pages=pages,
        page=current,
        start_index=start,
    )
