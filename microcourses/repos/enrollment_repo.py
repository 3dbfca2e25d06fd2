from __future__ import annotations

from typing import Protocol
from uuid import UUID

from microcourses.core.errors import AlreadyEnrolledError
from microcourses.models.enrollment import Enrollment


class EnrollmentRepo(Protocol):
    async def get(self, learner_id: UUID, course_id: UUID) -> Enrollment | None: ...
    async def add(self, enrollment: Enrollment) -> None: ...
    async def remove(self, learner_id: UUID, course_id: UUID) -> bool: ...
    async def list_for_learner(self, learner_id: UUID) -> list[Enrollment]: ...
    async def list_for_course(self, course_id: UUID) -> list[Enrollment]: ...


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], Enrollment] = {}

    async def get(self, learner_id: UUID, course_id: UUID) -> Enrollment | None:
        return self._store.get((learner_id, course_id))

    async def add(self, enrollment: Enrollment) -> None:
        key = (enrollment.learner_id, enrollment.course_id)
        if key in self._store:
            raise AlreadyEnrolledError()
        self._store[key] = enrollment

    async def remove(self, learner_id: UUID, course_id: UUID) -> bool:
        return self._store.pop((learner_id, course_id), None) is not None

    async def list_for_learner(self, learner_id: UUID) -> list[Enrollment]:
        return [e for e in self._store.values() if e.learner_id == learner_id]

    async def list_for_course(self, course_id: UUID) -> list[Enrollment]:
        return [e for e in self._store.values() if e.course_id == course_id]
