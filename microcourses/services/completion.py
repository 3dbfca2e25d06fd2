"""Course completion, derived on demand.

Nothing here is persisted: completion is recounted from the lesson
catalog and the learner's progress rows on every call, so adding or
removing lessons is reflected immediately.
"""

from __future__ import annotations

from uuid import UUID

from microcourses.models.progress import CourseCompletion
from microcourses.repos.store import Store, StoreProvider


async def aggregate_completion(
    store: Store, learner_id: UUID, course_id: UUID
) -> CourseCompletion:
    """Count completed lessons inside an already-open transaction."""
    lessons = await store.lessons.list_for_course(course_id)
    if not lessons:
        return CourseCompletion(
            learner_id=learner_id,
            course_id=course_id,
            total_lessons=0,
            completed_lessons=0,
        )

    rows = await store.progress.list_for_lessons(
        learner_id, [lesson.id for lesson in lessons]
    )
    return CourseCompletion(
        learner_id=learner_id,
        course_id=course_id,
        total_lessons=len(lessons),
        completed_lessons=sum(1 for row in rows if row.is_completed),
    )


class CompletionAggregator:
    def __init__(self, provider: StoreProvider) -> None:
        self._provider = provider

    async def evaluate_course_completion(
        self, learner_id: UUID, course_id: UUID
    ) -> CourseCompletion:
        async with self._provider.transaction() as store:
            return await aggregate_completion(store, learner_id, course_id)
