"""Enrollment endpoints.

DELETE /api/enrollments/{course_id} also wipes the learner's lesson
progress for that course.  Certificates already earned stay valid.
GET /api/enrollments/stats/{course_id} is for the course creator only.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from microcourses.api.dependencies import (
    caller_id,
    get_enrollment_service,
    require_any_role,
    require_user,
)
from microcourses.api.pagination import LimitParam, OffsetParam, PageOut, page_out
from microcourses.models.enrollment import Enrollment
from microcourses.models.page import DEFAULT_PAGE_LIMIT
from microcourses.models.principal import Principal
from microcourses.services.enrollment_service import (
    EnrollmentService,
    EnrollmentSummary,
)

router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])


class EnrollIn(BaseModel):
    courseId: UUID


class EnrollmentOut(BaseModel):
    learner_id: str
    course_id: str
    enrolled_at: int


class EnrollmentSummaryOut(EnrollmentOut):
    course_title: str
    course_description: str
    creator_name: str
    total_lessons: int
    completed_lessons: int
    progress_percentage: float


class EnrollmentCheckOut(BaseModel):
    isEnrolled: bool
    enrollment: EnrollmentOut | None


class EnrollmentStatsOut(BaseModel):
    total_enrollments: int
    enrollments_last_30_days: int
    enrollments_last_7_days: int
    users_with_progress: int
    average_completion_percentage: float


def _enrollment_out(enrollment: Enrollment) -> EnrollmentOut:
    return EnrollmentOut(
        learner_id=str(enrollment.learner_id),
        course_id=str(enrollment.course_id),
        enrolled_at=enrollment.enrolled_at,
    )


def _summary_out(summary: EnrollmentSummary) -> EnrollmentSummaryOut:
    return EnrollmentSummaryOut(
        learner_id=str(summary.enrollment.learner_id),
        course_id=str(summary.enrollment.course_id),
        enrolled_at=summary.enrollment.enrolled_at,
        course_title=summary.course_title,
        course_description=summary.course_description,
        creator_name=summary.creator_name,
        total_lessons=summary.total_lessons,
        completed_lessons=summary.completed_lessons,
        progress_percentage=summary.progress_percentage,
    )


@router.post(
    "",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll(
    body: EnrollIn,
    principal: Annotated[Principal, Depends(require_user)],
    service: Annotated[EnrollmentService, Depends(get_enrollment_service)],
) -> EnrollmentOut:
    enrollment = await service.enroll(caller_id(principal), body.courseId)
    return _enrollment_out(enrollment)


@router.get("/my-enrollments", response_model=PageOut[EnrollmentSummaryOut])
async def my_enrollments(
    principal: Annotated[Principal, Depends(require_user)],
    service: Annotated[EnrollmentService, Depends(get_enrollment_service)],
    limit: LimitParam = DEFAULT_PAGE_LIMIT,
    offset: OffsetParam = 0,
) -> PageOut[EnrollmentSummaryOut]:
    page = await service.my_enrollments(
        caller_id(principal), limit=limit, offset=offset
    )
    return page_out(page, _summary_out)


@router.get("/check/{course_id}", response_model=EnrollmentCheckOut)
async def check_enrollment(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    service: Annotated[EnrollmentService, Depends(get_enrollment_service)],
) -> EnrollmentCheckOut:
    enrollment = await service.check(caller_id(principal), course_id)
    return EnrollmentCheckOut(
        isEnrolled=enrollment is not None,
        enrollment=_enrollment_out(enrollment) if enrollment else None,
    )


@router.get("/stats/{course_id}", response_model=EnrollmentStatsOut)
async def enrollment_stats(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_any_role({"creator", "admin"}))],
    service: Annotated[EnrollmentService, Depends(get_enrollment_service)],
) -> EnrollmentStatsOut:
    stats = await service.enrollment_stats(caller_id(principal), course_id)
    return EnrollmentStatsOut(
        total_enrollments=stats.total_enrollments,
        enrollments_last_30_days=stats.enrollments_last_30_days,
        enrollments_last_7_days=stats.enrollments_last_7_days,
        users_with_progress=stats.users_with_progress,
        average_completion_percentage=stats.average_completion_percentage,
    )


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unenroll(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    service: Annotated[EnrollmentService, Depends(get_enrollment_service)],
) -> Response:
    await service.unenroll(caller_id(principal), course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
