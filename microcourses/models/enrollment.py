from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Enrollment:
    """A learner's membership in a course.  At most one per pair."""

    learner_id: UUID
    course_id: UUID
    enrolled_at: int
