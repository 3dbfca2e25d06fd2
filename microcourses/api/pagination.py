"""Shared list-endpoint plumbing: query params and the response envelope."""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated, Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel

from microcourses.models.page import MAX_PAGE_LIMIT, Page

T = TypeVar("T")
S = TypeVar("S")

LimitParam = Annotated[int, Query(ge=1, le=MAX_PAGE_LIMIT)]
OffsetParam = Annotated[int, Query(ge=0)]


class PageOut(BaseModel, Generic[T]):
    items: list[T]
    total: int
    limit: int
    offset: int
    next_offset: int | None


def page_out(page: Page[S], convert: Callable[[S], T]) -> PageOut[T]:
    return PageOut(
        items=[convert(item) for item in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        next_offset=page.next_offset,
    )
