"""Lesson progress endpoints.

  POST /api/progress/lessons/{lesson_id}            report a percentage
  POST /api/progress/lessons/{lesson_id}/complete   shorthand for 100
  GET  /api/progress/courses/{course_id}            per-lesson view (cached)
  GET  /api/progress/overview                       all enrolled courses

Reporting 100 on the last open lesson of a course triggers certificate
issuance.  The response is the same whether or not a certificate was
minted; clients poll /api/certificates/my-certificates for that.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, StrictInt

from microcourses.api.dependencies import (
    caller_id,
    get_progress_ledger,
    get_progress_views,
    require_user,
)
from microcourses.api.pagination import LimitParam, OffsetParam, PageOut
from microcourses.models.page import DEFAULT_PAGE_LIMIT
from microcourses.models.principal import Principal
from microcourses.models.progress import LessonProgress
from microcourses.services.progress_ledger import ProgressLedger
from microcourses.services.progress_views import ProgressViews

router = APIRouter(prefix="/api/progress", tags=["progress"])


class ProgressIn(BaseModel):
    # Strict: 50.0, "50" and true are all rejected, not coerced.
    progressPercentage: StrictInt


class LessonProgressOut(BaseModel):
    id: str
    learner_id: str
    lesson_id: str
    progress_percentage: int
    completed_at: int | None
    updated_at: int
    is_completed: bool


class LessonProgressViewOut(BaseModel):
    id: str
    title: str
    order_index: int
    duration: int
    progress_percentage: int | None
    completed_at: int | None
    is_completed: bool


class CourseProgressOut(BaseModel):
    courseId: str
    totalLessons: int
    completedLessons: int
    overallProgress: int
    isCourseCompleted: bool
    lessons: list[LessonProgressViewOut]


class OverviewItemOut(BaseModel):
    course_id: str
    course_title: str
    total_lessons: int
    completed_lessons: int
    progress_percentage: float
    is_completed: bool
    last_activity: int | None
    enrolled_at: int


class OverviewStatisticsOut(BaseModel):
    totalCourses: int
    completedCourses: int
    totalCompletedLessons: int
    totalLessonsAcrossCourses: int


class ProgressOverviewOut(PageOut[OverviewItemOut]):
    statistics: OverviewStatisticsOut


def _to_out(row: LessonProgress) -> LessonProgressOut:
    return LessonProgressOut(
        id=str(row.id),
        learner_id=str(row.learner_id),
        lesson_id=str(row.lesson_id),
        progress_percentage=row.progress_percentage,
        completed_at=row.completed_at,
        updated_at=row.updated_at,
        is_completed=row.is_completed,
    )


@router.post("/lessons/{lesson_id}", response_model=LessonProgressOut)
async def update_lesson_progress(
    lesson_id: UUID,
    body: ProgressIn,
    principal: Annotated[Principal, Depends(require_user)],
    ledger: Annotated[ProgressLedger, Depends(get_progress_ledger)],
) -> LessonProgressOut:
    row = await ledger.record_progress(
        caller_id(principal), lesson_id, body.progressPercentage
    )
    return _to_out(row)


@router.post("/lessons/{lesson_id}/complete", response_model=LessonProgressOut)
async def complete_lesson(
    lesson_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    ledger: Annotated[ProgressLedger, Depends(get_progress_ledger)],
) -> LessonProgressOut:
    row = await ledger.complete_lesson(caller_id(principal), lesson_id)
    return _to_out(row)


@router.get("/courses/{course_id}", response_model=CourseProgressOut)
async def get_course_progress(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    views: Annotated[ProgressViews, Depends(get_progress_views)],
) -> CourseProgressOut:
    view = await views.course_progress(caller_id(principal), course_id)
    return CourseProgressOut(**view)


@router.get("/overview", response_model=ProgressOverviewOut)
async def get_progress_overview(
    principal: Annotated[Principal, Depends(require_user)],
    views: Annotated[ProgressViews, Depends(get_progress_views)],
    limit: LimitParam = DEFAULT_PAGE_LIMIT,
    offset: OffsetParam = 0,
) -> ProgressOverviewOut:
    overview = await views.progress_overview(
        caller_id(principal), limit=limit, offset=offset
    )
    page = overview.page
    return ProgressOverviewOut(
        items=[OverviewItemOut(**item) for item in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        next_offset=page.next_offset,
        statistics=OverviewStatisticsOut(**overview.statistics),
    )
