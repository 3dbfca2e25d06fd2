"""Enrollment lifecycle.

Unenrolling removes the learner's lesson progress for that course in
the same transaction as the enrollment itself.  Certificates are never
touched: a certificate outlives the enrollment that earned it.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from uuid import UUID

from redis.exceptions import RedisError

from microcourses.core.errors import CourseNotFoundError, EnrollmentNotFoundError
from microcourses.models.enrollment import Enrollment
from microcourses.models.page import Page, check_page_bounds
from microcourses.repos.store import StoreProvider
from microcourses.services.cache import CacheService, invalidate_course_progress
from microcourses.services.completion import aggregate_completion

logger = logging.getLogger(__name__)

_DAY_SECONDS = 24 * 60 * 60


@dataclass(frozen=True, slots=True)
class EnrollmentSummary:
    enrollment: Enrollment
    course_title: str
    course_description: str
    creator_name: str
    total_lessons: int
    completed_lessons: int

    @property
    def progress_percentage(self) -> float:
        if self.total_lessons == 0:
            return 0.0
        return round(self.completed_lessons / self.total_lessons * 100, 2)


@dataclass(frozen=True, slots=True)
class EnrollmentStats:
    total_enrollments: int
    enrollments_last_30_days: int
    enrollments_last_7_days: int
    users_with_progress: int
    average_completion_percentage: float


class EnrollmentService:
    def __init__(self, provider: StoreProvider, cache: CacheService) -> None:
        self._provider = provider
        self._cache = cache

    async def enroll(self, learner_id: UUID, course_id: UUID) -> Enrollment:
        now = int(datetime.datetime.now(datetime.UTC).timestamp())
        async with self._provider.transaction() as store:
            course = await store.courses.get(course_id)
            if course is None or not course.is_published:
                raise CourseNotFoundError()
            enrollment = Enrollment(
                learner_id=learner_id, course_id=course_id, enrolled_at=now
            )
            # AlreadyEnrolledError from the repo propagates as 409.
            await store.enrollments.add(enrollment)

        logger.info(
            "Learner enrolled",
            extra={"learner_id": str(learner_id), "course_id": str(course_id)},
        )
        return enrollment

    async def unenroll(self, learner_id: UUID, course_id: UUID) -> None:
        async with self._provider.transaction() as store:
            if await store.enrollments.get(learner_id, course_id) is None:
                raise EnrollmentNotFoundError()
            lessons = await store.lessons.list_for_course(course_id)
            deleted = await store.progress.delete_for_lessons(
                learner_id, [lesson.id for lesson in lessons]
            )
            await store.enrollments.remove(learner_id, course_id)

        logger.info(
            "Learner unenrolled, %d progress rows removed",
            deleted,
            extra={"learner_id": str(learner_id), "course_id": str(course_id)},
        )
        try:
            await invalidate_course_progress(self._cache, learner_id, course_id)
        except RedisError:
            logger.warning("Cache invalidation failed on unenroll", exc_info=True)

    async def check(self, learner_id: UUID, course_id: UUID) -> Enrollment | None:
        async with self._provider.transaction() as store:
            return await store.enrollments.get(learner_id, course_id)

    async def my_enrollments(
        self, learner_id: UUID, *, limit: int, offset: int
    ) -> Page[EnrollmentSummary]:
        check_page_bounds(limit, offset)
        async with self._provider.transaction() as store:
            enrollments = await store.enrollments.list_for_learner(learner_id)
            enrollments.sort(key=lambda e: e.enrolled_at, reverse=True)

            items = []
            for enrollment in enrollments[offset : offset + limit]:
                course = await store.courses.get(enrollment.course_id)
                creator = (
                    await store.users.get_by_id(course.creator_id) if course else None
                )
                completion = await aggregate_completion(
                    store, learner_id, enrollment.course_id
                )
                items.append(
                    EnrollmentSummary(
                        enrollment=enrollment,
                        course_title=course.title if course else "",
                        course_description=course.description if course else "",
                        creator_name=creator.full_name if creator else "",
                        total_lessons=completion.total_lessons,
                        completed_lessons=completion.completed_lessons,
                    )
                )

        return Page(items=items, total=len(enrollments), limit=limit, offset=offset)

    async def enrollment_stats(
        self, creator_id: UUID, course_id: UUID, *, now: int | None = None
    ) -> EnrollmentStats:
        """Enrollment numbers for the course's creator.

        A learner has progress once any row exists on the course's lessons;
        completion counts lessons at 100%, averaged over all enrollments.
        """
        if now is None:
            now = int(datetime.datetime.now(datetime.UTC).timestamp())
        async with self._provider.transaction() as store:
            course = await store.courses.get(course_id)
            if course is None or course.creator_id != creator_id:
                raise CourseNotFoundError("Course not found or access denied")
            enrollments = await store.enrollments.list_for_course(course_id)
            lesson_ids = [
                lesson.id for lesson in await store.lessons.list_for_course(course_id)
            ]

            with_progress = 0
            percentages = []
            for enrollment in enrollments:
                rows = await store.progress.list_for_lessons(
                    enrollment.learner_id, lesson_ids
                )
                if rows:
                    with_progress += 1
                completed = sum(1 for row in rows if row.is_completed)
                percentages.append(
                    completed / len(lesson_ids) * 100 if lesson_ids else 0.0
                )

        return EnrollmentStats(
            total_enrollments=len(enrollments),
            enrollments_last_30_days=sum(
                1 for e in enrollments if e.enrolled_at >= now - 30 * _DAY_SECONDS
            ),
            enrollments_last_7_days=sum(
                1 for e in enrollments if e.enrolled_at >= now - 7 * _DAY_SECONDS
            ),
            users_with_progress=with_progress,
            average_completion_percentage=(
                round(sum(percentages) / len(percentages), 2) if percentages else 0.0
            ),
        )
