"""PostgreSQL implementation of EnrollmentRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from microcourses.core.errors import AlreadyEnrolledError
from microcourses.db.tables import EnrollmentRow
from microcourses.models.enrollment import Enrollment


class PgEnrollmentRepo:
    """Satisfies the EnrollmentRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, learner_id: UUID, course_id: UUID) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.user_id == learner_id,
            EnrollmentRow.course_id == course_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_enrollment(row)

    async def add(self, enrollment: Enrollment) -> None:
        stmt = (
            pg_insert(EnrollmentRow)
            .values(
                user_id=enrollment.learner_id,
                course_id=enrollment.course_id,
                enrolled_at=enrollment.enrolled_at,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "course_id"])
            .returning(EnrollmentRow.id)
        )
        inserted = (await self._session.execute(stmt)).scalar_one_or_none()
        if inserted is None:
            raise AlreadyEnrolledError()

    async def remove(self, learner_id: UUID, course_id: UUID) -> bool:
        stmt = delete(EnrollmentRow).where(
            EnrollmentRow.user_id == learner_id,
            EnrollmentRow.course_id == course_id,
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def list_for_learner(self, learner_id: UUID) -> list[Enrollment]:
        stmt = select(EnrollmentRow).where(EnrollmentRow.user_id == learner_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(row) for row in rows]

    async def list_for_course(self, course_id: UUID) -> list[Enrollment]:
        stmt = select(EnrollmentRow).where(EnrollmentRow.course_id == course_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(row) for row in rows]


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        learner_id=row.user_id,
        course_id=row.course_id,
        enrolled_at=row.enrolled_at,
    )
