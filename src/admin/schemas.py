"""Pydantic schemas for admin endpoints."""

import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, EmailStr, Field


T = TypeVar("T")


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class Page(BaseModel, Generic[T]):
    """Paginated list response."""

    items: list[T]
    pagination: Pagination


def paginate(items: list[Any], page: int, limit: int) -> Page:
    """Slice an already sorted list into one page."""
    total = len(items)
    start = (page - 1) * limit
    return Page(
        items=items[start : start + limit],
        pagination=Pagination(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
        ),
    )


class BlockEmailRequest(BaseModel):
    email: EmailStr
    reason: str | None = Field(None, max_length=500)
