"""Store: the repository bundle every progress/certificate component uses.

Components never reach for a global connection.  They are constructed
with a StoreProvider and open a transaction when they need one::

    async with provider.transaction() as store:
        lesson = await store.lessons.get(lesson_id)
        await store.progress.upsert(...)

Each ``transaction()`` is independent, which is what lets the progress
ledger commit a lesson write and then run certificate issuance in a
separate transaction that can fail on its own.

Two providers:
  PgStoreProvider       one AsyncSession per transaction; commit on
                        normal exit, rollback on exception.  Lost
                        connectivity surfaces as StoreUnavailableError.
  InMemoryStoreProvider dict-backed repos shared by all transactions,
                        with the same uniqueness rules as the schema.
                        No rollback: used for tests and local dev.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from microcourses.core.errors import StoreUnavailableError
from microcourses.db.engine import async_session_factory
from microcourses.repos.certificate_repo import CertificateRepo, InMemoryCertificateRepo
from microcourses.repos.course_repo import CourseRepo, InMemoryCourseRepo
from microcourses.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from microcourses.repos.lesson_repo import InMemoryLessonRepo, LessonRepo
from microcourses.repos.pg_certificate_repo import PgCertificateRepo
from microcourses.repos.pg_course_repo import PgCourseRepo, PgLessonRepo
from microcourses.repos.pg_enrollment_repo import PgEnrollmentRepo
from microcourses.repos.pg_progress_repo import PgProgressRepo
from microcourses.repos.pg_user_repo import PgUserRepo
from microcourses.repos.progress_repo import InMemoryProgressRepo, ProgressRepo
from microcourses.repos.user_repo import InMemoryUserRepo, UserRepo

logger = logging.getLogger(__name__)

# Errors that mean "could not talk to the database", not "the query was wrong".
_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, OSError)


@dataclass(frozen=True, slots=True)
class Store:
    users: UserRepo
    courses: CourseRepo
    lessons: LessonRepo
    enrollments: EnrollmentRepo
    progress: ProgressRepo
    certificates: CertificateRepo


class StoreProvider(Protocol):
    def transaction(self) -> AbstractAsyncContextManager[Store]: ...
    async def ping(self) -> None: ...


class InMemoryStoreProvider:
    def __init__(self) -> None:
        self.store = Store(
            users=InMemoryUserRepo(),
            courses=InMemoryCourseRepo(),
            lessons=InMemoryLessonRepo(),
            enrollments=InMemoryEnrollmentRepo(),
            progress=InMemoryProgressRepo(),
            certificates=InMemoryCertificateRepo(),
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Store]:
        yield self.store

    async def ping(self) -> None:
        return None


class PgStoreProvider:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Store]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield Store(
                        users=PgUserRepo(session),
                        courses=PgCourseRepo(session),
                        lessons=PgLessonRepo(session),
                        enrollments=PgEnrollmentRepo(session),
                        progress=PgProgressRepo(session),
                        certificates=PgCertificateRepo(session),
                    )
        except _UNAVAILABLE_ERRORS as exc:
            logger.error("Data store unavailable: %s", exc)
            raise StoreUnavailableError() from exc

    async def ping(self) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailableError() from exc


# ---------------------------------------------------------------------------
# Process-wide default, resolved by the API through get_store_provider().
# Tests override that dependency instead of touching this object.
# ---------------------------------------------------------------------------

if async_session_factory is not None:
    store_provider: StoreProvider = PgStoreProvider(async_session_factory)
else:
    store_provider = InMemoryStoreProvider()
