from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

COMPLETE_PERCENTAGE = 100


@dataclass(frozen=True, slots=True)
class LessonProgress:
    """A learner's state on one lesson, one row per (learner, lesson).

    completed_at is set iff progress_percentage == 100.  Later reports
    may lower the percentage; that clears completed_at again.
    """

    id: UUID
    learner_id: UUID
    lesson_id: UUID
    progress_percentage: int
    completed_at: int | None
    updated_at: int

    @property
    def is_completed(self) -> bool:
        return self.progress_percentage == COMPLETE_PERCENTAGE

    @staticmethod
    def new(
        *,
        learner_id: UUID,
        lesson_id: UUID,
        progress_percentage: int,
        now: int,
    ) -> LessonProgress:
        return LessonProgress(
            id=uuid4(),
            learner_id=learner_id,
            lesson_id=lesson_id,
            progress_percentage=progress_percentage,
            completed_at=now if progress_percentage == COMPLETE_PERCENTAGE else None,
            updated_at=now,
        )


@dataclass(frozen=True, slots=True)
class CourseCompletion:
    """Derived view, never persisted.

    Recomputed from the lesson catalog and the learner's progress rows
    whenever it is needed.
    """

    learner_id: UUID
    course_id: UUID
    total_lessons: int
    completed_lessons: int

    @property
    def is_complete(self) -> bool:
        # A course with no lessons can never be completed.
        return self.total_lessons > 0 and self.completed_lessons == self.total_lessons

    @property
    def overall_progress(self) -> int:
        if self.total_lessons == 0:
            return 0
        return round(self.completed_lessons / self.total_lessons * 100)
