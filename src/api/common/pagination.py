from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")

DEFAULT_MAX_LIMIT = 200


class OffsetPage(BaseModel, Generic[T]):
    items: list[T]
    total: int
    limit: int
    offset: int
    has_more: bool


def clamp_window(limit: int, offset: int, max_limit: int = DEFAULT_MAX_LIMIT) -> tuple[int, int]:
    """Clamp a requested ``(limit, offset)`` pair to ``1..max_limit`` and ``>= 0``."""
    return max(1, min(limit, max_limit)), max(0, offset)


def build_page(*, items: list[T], total: int, limit: int, offset: int) -> OffsetPage[T]:
    return OffsetPage[T](
        items=items,
        total=total,
        limit=limit,
        offset=offset,
        has_more=(offset + len(items)) < total,
    )
