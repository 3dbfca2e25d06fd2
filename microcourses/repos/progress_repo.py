"""Progress ledger storage: one LessonProgress row per (learner, lesson)."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from microcourses.models.progress import COMPLETE_PERCENTAGE, LessonProgress


class ProgressRepo(Protocol):
    async def upsert(
        self, learner_id: UUID, lesson_id: UUID, percentage: int, now: int
    ) -> LessonProgress: ...
    async def get(self, learner_id: UUID, lesson_id: UUID) -> LessonProgress | None: ...
    async def list_for_lessons(
        self, learner_id: UUID, lesson_ids: Iterable[UUID]
    ) -> list[LessonProgress]: ...
    async def delete_for_lessons(
        self, learner_id: UUID, lesson_ids: Iterable[UUID]
    ) -> int: ...


class InMemoryProgressRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], LessonProgress] = {}

    async def upsert(
        self, learner_id: UUID, lesson_id: UUID, percentage: int, now: int
    ) -> LessonProgress:
        key = (learner_id, lesson_id)
        existing = self._store.get(key)
        if existing is None:
            row = LessonProgress.new(
                learner_id=learner_id,
                lesson_id=lesson_id,
                progress_percentage=percentage,
                now=now,
            )
        else:
            row = replace(
                existing,
                progress_percentage=percentage,
                completed_at=now if percentage == COMPLETE_PERCENTAGE else None,
                updated_at=now,
            )
        self._store[key] = row
        return row

    async def get(self, learner_id: UUID, lesson_id: UUID) -> LessonProgress | None:
        return self._store.get((learner_id, lesson_id))

    async def list_for_lessons(
        self, learner_id: UUID, lesson_ids: Iterable[UUID]
    ) -> list[LessonProgress]:
        rows = (self._store.get((learner_id, lid)) for lid in set(lesson_ids))
        return [row for row in rows if row is not None]

    async def delete_for_lessons(
        self, learner_id: UUID, lesson_ids: Iterable[UUID]
    ) -> int:
        deleted = 0
        for lid in set(lesson_ids):
            if self._store.pop((learner_id, lid), None) is not None:
                deleted += 1
        return deleted
