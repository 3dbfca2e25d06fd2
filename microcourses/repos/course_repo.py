from __future__ import annotations

from typing import Protocol
from uuid import UUID

from microcourses.models.course import Course


class CourseRepo(Protocol):
    async def get(self, course_id: UUID) -> Course | None: ...
    async def add(self, course: Course) -> None: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Course] = {}

    async def get(self, course_id: UUID) -> Course | None:
        return self._by_id.get(course_id)

    async def add(self, course: Course) -> None:
        if course.id in self._by_id:
            raise ValueError("course already exists")
        self._by_id[course.id] = course
