"""Learner-facing progress views.

course_progress()    one course, lesson by lesson; read-through cached
progress_overview()  every published course the learner is enrolled in,
                     paginated, plus totals across all of them

Both return JSON-ready dicts in the shape the API serves, which is also
the shape stored in the cache.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from redis.exceptions import RedisError

from microcourses.core.errors import CourseNotFoundError
from microcourses.models.page import Page, check_page_bounds
from microcourses.models.progress import CourseCompletion
from microcourses.repos.store import StoreProvider
from microcourses.services.cache import (
    CacheService,
    course_generation_key,
    course_progress_key,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressOverview:
    page: Page[dict[str, Any]]
    statistics: dict[str, int]


class ProgressViews:
    def __init__(
        self, provider: StoreProvider, cache: CacheService, *, cache_ttl: int
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._cache_ttl = cache_ttl

    async def course_progress(self, learner_id: UUID, course_id: UUID) -> dict[str, Any]:
        # Redis is never authoritative: any cache failure falls through to
        # the store and the view is served uncached.
        cache_key = None
        try:
            generation = await self._cache.generation(
                course_generation_key(learner_id, course_id)
            )
            # Read before building: a write that lands mid-build bumps the
            # generation, so this view is stored under a retired key.
            cache_key = course_progress_key(learner_id, course_id, generation)
            cached = await self._cache.get(cache_key)
        except RedisError:
            logger.warning(
                "Cache read failed learner=%s course=%s",
                learner_id,
                course_id,
                exc_info=True,
            )
            cached = None
        if cached is not None:
            return json.loads(cached)

        view = await self._build_course_progress(learner_id, course_id)
        if cache_key is not None:
            try:
                await self._cache.set(cache_key, json.dumps(view), self._cache_ttl)
            except RedisError:
                logger.warning(
                    "Cache write failed learner=%s course=%s",
                    learner_id,
                    course_id,
                    exc_info=True,
                )
        return view

    async def _build_course_progress(
        self, learner_id: UUID, course_id: UUID
    ) -> dict[str, Any]:
        async with self._provider.transaction() as store:
            course = await store.courses.get(course_id)
            if course is None or not course.is_published:
                raise CourseNotFoundError()
            if await store.enrollments.get(learner_id, course_id) is None:
                raise CourseNotFoundError("Course not found or access denied")
            lessons = await store.lessons.list_for_course(course_id)
            rows = await store.progress.list_for_lessons(
                learner_id, [lesson.id for lesson in lessons]
            )

        by_lesson = {row.lesson_id: row for row in rows}
        lesson_views = []
        for lesson in lessons:
            row = by_lesson.get(lesson.id)
            lesson_views.append(
                {
                    "id": str(lesson.id),
                    "title": lesson.title,
                    "order_index": lesson.order_index,
                    "duration": lesson.duration,
                    "progress_percentage": row.progress_percentage if row else None,
                    "completed_at": row.completed_at if row else None,
                    "is_completed": row.is_completed if row else False,
                }
            )

        completion = CourseCompletion(
            learner_id=learner_id,
            course_id=course_id,
            total_lessons=len(lessons),
            completed_lessons=sum(1 for v in lesson_views if v["is_completed"]),
        )
        return {
            "courseId": str(course_id),
            "totalLessons": completion.total_lessons,
            "completedLessons": completion.completed_lessons,
            "overallProgress": completion.overall_progress,
            "isCourseCompleted": completion.is_complete,
            "lessons": lesson_views,
        }

    async def progress_overview(
        self, learner_id: UUID, *, limit: int, offset: int
    ) -> ProgressOverview:
        check_page_bounds(limit, offset)

        items: list[dict[str, Any]] = []
        async with self._provider.transaction() as store:
            for enrollment in await store.enrollments.list_for_learner(learner_id):
                course = await store.courses.get(enrollment.course_id)
                if course is None or not course.is_published:
                    continue
                lessons = await store.lessons.list_for_course(course.id)
                rows = await store.progress.list_for_lessons(
                    learner_id, [lesson.id for lesson in lessons]
                )
                total = len(lessons)
                completed = sum(1 for row in rows if row.is_completed)
                items.append(
                    {
                        "course_id": str(course.id),
                        "course_title": course.title,
                        "total_lessons": total,
                        "completed_lessons": completed,
                        "progress_percentage": (
                            round(completed / total * 100, 2) if total else 0.0
                        ),
                        "is_completed": total > 0 and completed == total,
                        "last_activity": max(
                            (row.updated_at for row in rows), default=None
                        ),
                        "enrolled_at": enrollment.enrolled_at,
                    }
                )

        # Most recent activity first; never-started courses after all
        # started ones, newest enrollment first.
        items.sort(
            key=lambda i: (
                i["last_activity"] is None,
                -(i["last_activity"] or 0),
                -i["enrolled_at"],
            )
        )
        statistics = {
            "totalCourses": len(items),
            "completedCourses": sum(1 for i in items if i["is_completed"]),
            "totalCompletedLessons": sum(i["completed_lessons"] for i in items),
            "totalLessonsAcrossCourses": sum(i["total_lessons"] for i in items),
        }
        return ProgressOverview(
            page=Page(
                items=items[offset : offset + limit],
                total=len(items),
                limit=limit,
                offset=offset,
            ),
            statistics=statistics,
        )
