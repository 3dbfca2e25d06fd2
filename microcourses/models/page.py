from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from microcourses.core.errors import ValidationError

T = TypeVar("T")

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100


def check_page_bounds(limit: int, offset: int) -> None:
    if not 1 <= limit <= MAX_PAGE_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")
    if offset < 0:
        raise ValidationError("offset must be >= 0")


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    """One slice of a list endpoint plus the numbers a client pages with."""

    items: list[T]
    total: int
    limit: int
    offset: int

    @property
    def next_offset(self) -> int | None:
        nxt = self.offset + self.limit
        return nxt if nxt < self.total else None
