from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    creator_id: UUID
    description: str = ""
    status: str = "draft"  # draft|pending|published|rejected
    created_at: int = 0

    @property
    def is_published(self) -> bool:
        return self.status == "published"

    @staticmethod
    def new(
        *,
        title: str,
        creator_id: UUID,
        description: str = "",
        status: str = "draft",
        created_at: int = 0,
    ) -> Course:
        return Course(
            id=uuid4(),
            title=title,
            creator_id=creator_id,
            description=description,
            status=status,
            created_at=created_at,
        )


@dataclass(frozen=True, slots=True)
class Lesson:
    """One entry of a course's lesson catalog.

    order_index is unique within a course; the set of lessons of a course
    defines what "100% of the course" means.
    """

    id: UUID
    course_id: UUID
    title: str
    order_index: int
    duration: int = 0  # seconds

    @staticmethod
    def new(
        *, course_id: UUID, title: str, order_index: int, duration: int = 0
    ) -> Lesson:
        return Lesson(
            id=uuid4(),
            course_id=course_id,
            title=title,
            order_index=order_index,
            duration=duration,
        )
