"""Lesson catalog: the ordered lessons of each course.

Authoring happens elsewhere; the progress pipeline only needs to look a
lesson up and to list a course's lessons in order.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from microcourses.models.course import Lesson


class LessonRepo(Protocol):
    async def get(self, lesson_id: UUID) -> Lesson | None: ...
    async def list_for_course(self, course_id: UUID) -> list[Lesson]: ...
    async def add(self, lesson: Lesson) -> None: ...


class InMemoryLessonRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Lesson] = {}

    async def get(self, lesson_id: UUID) -> Lesson | None:
        return self._by_id.get(lesson_id)

    async def list_for_course(self, course_id: UUID) -> list[Lesson]:
        lessons = [
            lesson for lesson in self._by_id.values() if lesson.course_id == course_id
        ]
        return sorted(lessons, key=lambda lesson: lesson.order_index)

    async def add(self, lesson: Lesson) -> None:
        for existing in self._by_id.values():
            if (
                existing.course_id == lesson.course_id
                and existing.order_index == lesson.order_index
            ):
                raise ValueError("order_index already used in this course")
        self._by_id[lesson.id] = lesson
