"""PostgreSQL implementation of ProgressRepo."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from microcourses.db.tables import LessonProgressRow
from microcourses.models.progress import COMPLETE_PERCENTAGE, LessonProgress


class PgProgressRepo:
    """Satisfies the ProgressRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(
        self, learner_id: UUID, lesson_id: UUID, percentage: int, now: int
    ) -> LessonProgress:
        completed_at = now if percentage == COMPLETE_PERCENTAGE else None
        # Single statement: concurrent reports for the same lesson
        # serialize on uq_lesson_progress_user_lesson instead of racing
        # a SELECT-then-INSERT.
        stmt = (
            pg_insert(LessonProgressRow)
            .values(
                id=uuid.uuid4(),
                user_id=learner_id,
                lesson_id=lesson_id,
                progress_percentage=percentage,
                completed_at=completed_at,
                updated_at=now,
            )
            .on_conflict_do_update(
                index_elements=["user_id", "lesson_id"],
                set_={
                    "progress_percentage": percentage,
                    "completed_at": completed_at,
                    "updated_at": now,
                },
            )
            .returning(LessonProgressRow)
        )
        result = await self._session.scalars(
            stmt, execution_options={"populate_existing": True}
        )
        return _row_to_progress(result.one())

    async def get(self, learner_id: UUID, lesson_id: UUID) -> LessonProgress | None:
        stmt = select(LessonProgressRow).where(
            LessonProgressRow.user_id == learner_id,
            LessonProgressRow.lesson_id == lesson_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_progress(row)

    async def list_for_lessons(
        self, learner_id: UUID, lesson_ids: Iterable[UUID]
    ) -> list[LessonProgress]:
        ids = list(lesson_ids)
        if not ids:
            return []
        stmt = select(LessonProgressRow).where(
            LessonProgressRow.user_id == learner_id,
            LessonProgressRow.lesson_id.in_(ids),
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_progress(row) for row in rows]

    async def delete_for_lessons(
        self, learner_id: UUID, lesson_ids: Iterable[UUID]
    ) -> int:
        ids = list(lesson_ids)
        if not ids:
            return 0
        stmt = delete(LessonProgressRow).where(
            LessonProgressRow.user_id == learner_id,
            LessonProgressRow.lesson_id.in_(ids),
        )
        result = await self._session.execute(stmt)
        return result.rowcount


def _row_to_progress(row: LessonProgressRow) -> LessonProgress:
    return LessonProgress(
        id=row.id,
        learner_id=row.user_id,
        lesson_id=row.lesson_id,
        progress_percentage=row.progress_percentage,
        completed_at=row.completed_at,
        updated_at=row.updated_at,
    )
