"""PostgreSQL implementations of CourseRepo and LessonRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from microcourses.db.tables import CourseRow, LessonRow
from microcourses.models.course import Course, Lesson


class PgCourseRepo:
    """Satisfies the CourseRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, course_id: UUID) -> Course | None:
        row = await self._session.get(CourseRow, course_id)
        if row is None:
            return None
        return _row_to_course(row)

    async def add(self, course: Course) -> None:
        self._session.add(
            CourseRow(
                id=course.id,
                title=course.title,
                description=course.description,
                creator_id=course.creator_id,
                status=course.status,
                created_at=course.created_at,
            )
        )
        await self._session.flush()


class PgLessonRepo:
    """Satisfies the LessonRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, lesson_id: UUID) -> Lesson | None:
        row = await self._session.get(LessonRow, lesson_id)
        if row is None:
            return None
        return _row_to_lesson(row)

    async def list_for_course(self, course_id: UUID) -> list[Lesson]:
        stmt = (
            select(LessonRow)
            .where(LessonRow.course_id == course_id)
            .order_by(LessonRow.order_index)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_lesson(row) for row in rows]

    async def add(self, lesson: Lesson) -> None:
        self._session.add(
            LessonRow(
                id=lesson.id,
                course_id=lesson.course_id,
                title=lesson.title,
                order_index=lesson.order_index,
                duration=lesson.duration,
            )
        )
        await self._session.flush()


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        title=row.title,
        creator_id=row.creator_id,
        description=row.description or "",
        status=row.status,
        created_at=row.created_at,
    )


def _row_to_lesson(row: LessonRow) -> Lesson:
    return Lesson(
        id=row.id,
        course_id=row.course_id,
        title=row.title,
        order_index=row.order_index,
        duration=row.duration,
    )
