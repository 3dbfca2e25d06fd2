"""Lesson progress writes.

    record_progress(learner, lesson, pct)
      -> validate pct
      -> [tx] lesson exists, course published, learner enrolled
              upsert (learner, lesson) row                     -> commit
      -> bump the cached course view's generation
      -> pct == 100: hand (learner, course) to the issuance dispatcher

Issuance runs after the commit and in its own transaction.  A failing
issuer is logged and counted; the learner still gets their progress
response and the row stays written.
"""

from __future__ import annotations

import datetime
import logging
from uuid import UUID

from redis.exceptions import RedisError

from microcourses.core.errors import LessonNotFoundError, ValidationError
from microcourses.core.metrics import CERTIFICATE_ISSUANCE_FAILURES, PROGRESS_UPDATES
from microcourses.models.course import Lesson
from microcourses.models.progress import COMPLETE_PERCENTAGE, LessonProgress
from microcourses.repos.store import Store, StoreProvider
from microcourses.services.cache import CacheService, invalidate_course_progress
from microcourses.services.issuance_dispatch import IssuanceDispatcher

logger = logging.getLogger(__name__)


def _validate_percentage(percentage: object) -> int:
    # bool is an int subclass; True must not read as 1%.
    if isinstance(percentage, bool) or not isinstance(percentage, int):
        raise ValidationError("Progress percentage must be an integer")
    if not 0 <= percentage <= COMPLETE_PERCENTAGE:
        raise ValidationError("Progress percentage must be between 0 and 100")
    return percentage


async def _accessible_lesson(store: Store, learner_id: UUID, lesson_id: UUID) -> Lesson:
    lesson = await store.lessons.get(lesson_id)
    if lesson is None:
        raise LessonNotFoundError()
    course = await store.courses.get(lesson.course_id)
    if course is None or not course.is_published:
        raise LessonNotFoundError()
    if await store.enrollments.get(learner_id, course.id) is None:
        raise LessonNotFoundError()
    return lesson


class ProgressLedger:
    def __init__(
        self,
        provider: StoreProvider,
        dispatcher: IssuanceDispatcher,
        cache: CacheService,
    ) -> None:
        self._provider = provider
        self._dispatcher = dispatcher
        self._cache = cache

    async def record_progress(
        self, learner_id: UUID, lesson_id: UUID, percentage: int
    ) -> LessonProgress:
        percentage = _validate_percentage(percentage)
        now = int(datetime.datetime.now(datetime.UTC).timestamp())

        async with self._provider.transaction() as store:
            lesson = await _accessible_lesson(store, learner_id, lesson_id)
            row = await store.progress.upsert(learner_id, lesson_id, percentage, now)

        PROGRESS_UPDATES.labels(
            outcome="completed" if row.is_completed else "partial"
        ).inc()
        logger.info(
            "Progress recorded pct=%d",
            percentage,
            extra={
                "learner_id": str(learner_id),
                "lesson_id": str(lesson_id),
                "course_id": str(lesson.course_id),
            },
        )

        await self._invalidate(learner_id, lesson.course_id)

        if row.is_completed:
            await self._dispatch_issuance(learner_id, lesson.course_id)
        return row

    async def complete_lesson(self, learner_id: UUID, lesson_id: UUID) -> LessonProgress:
        return await self.record_progress(learner_id, lesson_id, COMPLETE_PERCENTAGE)

    async def _invalidate(self, learner_id: UUID, course_id: UUID) -> None:
        # Entries expire on their own; a failed bump only means a stale read.
        try:
            await invalidate_course_progress(self._cache, learner_id, course_id)
        except RedisError:
            logger.warning(
                "Cache invalidation failed learner=%s course=%s",
                learner_id,
                course_id,
                exc_info=True,
            )

    async def _dispatch_issuance(self, learner_id: UUID, course_id: UUID) -> None:
        try:
            await self._dispatcher.dispatch(learner_id, course_id)
        except Exception:
            CERTIFICATE_ISSUANCE_FAILURES.inc()
            logger.exception(
                "Certificate issuance failed learner=%s course=%s",
                learner_id,
                course_id,
            )
