"""PostgreSQL implementation of CertificateRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from microcourses.core.errors import CertificateAlreadyIssuedError
from microcourses.db.tables import CertificateRow
from microcourses.models.certificate import Certificate


class PgCertificateRepo:
    """Satisfies the CertificateRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, certificate_id: UUID) -> Certificate | None:
        row = await self._session.get(CertificateRow, certificate_id)
        if row is None:
            return None
        return _row_to_certificate(row)

    async def get_for_learner_course(
        self, learner_id: UUID, course_id: UUID
    ) -> Certificate | None:
        stmt = select(CertificateRow).where(
            CertificateRow.user_id == learner_id,
            CertificateRow.course_id == course_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_certificate(row)

    async def get_by_serial(self, serial_hash: str) -> Certificate | None:
        stmt = select(CertificateRow).where(CertificateRow.serial_hash == serial_hash)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_certificate(row)

    async def insert(self, certificate: Certificate) -> None:
        """INSERT ... ON CONFLICT (user_id, course_id) DO NOTHING.

        A concurrent winner makes RETURNING come back empty.  Only the
        (user_id, course_id) conflict is absorbed; a serial_hash
        collision still raises IntegrityError.
        """
        stmt = (
            pg_insert(CertificateRow)
            .values(
                id=certificate.id,
                user_id=certificate.learner_id,
                course_id=certificate.course_id,
                serial_hash=certificate.serial_hash,
                issued_at=certificate.issued_at,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "course_id"])
            .returning(CertificateRow.id)
        )
        inserted = (await self._session.execute(stmt)).scalar_one_or_none()
        if inserted is None:
            raise CertificateAlreadyIssuedError(
                (certificate.learner_id, certificate.course_id)
            )

    async def list_for_learner(
        self, learner_id: UUID, *, limit: int, offset: int
    ) -> list[Certificate]:
        stmt = (
            select(CertificateRow)
            .where(CertificateRow.user_id == learner_id)
            .order_by(CertificateRow.issued_at.desc())
            .limit(limit)
            .offset(offset)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_certificate(row) for row in rows]

    async def count_for_learner(self, learner_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(CertificateRow)
            .where(CertificateRow.user_id == learner_id)
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def list_for_course(self, course_id: UUID) -> list[Certificate]:
        stmt = select(CertificateRow).where(CertificateRow.course_id == course_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_certificate(row) for row in rows]


def _row_to_certificate(row: CertificateRow) -> Certificate:
    return Certificate(
        id=row.id,
        learner_id=row.user_id,
        course_id=row.course_id,
        serial_hash=row.serial_hash,
        issued_at=row.issued_at,
    )
