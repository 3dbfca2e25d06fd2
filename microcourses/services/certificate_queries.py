"""Read-side certificate queries: a learner's own certificates and
per-course issuance statistics for the course creator."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from uuid import UUID

from microcourses.core.errors import CertificateNotFoundError, CourseNotFoundError
from microcourses.models.certificate import Certificate, CertificateDetails
from microcourses.models.page import Page, check_page_bounds
from microcourses.repos.store import Store, StoreProvider

_DAY_SECONDS = 24 * 60 * 60


@dataclass(frozen=True, slots=True)
class CertificateStats:
    total_certificates_issued: int
    certificates_last_30_days: int
    certificates_last_7_days: int
    unique_certificate_holders: int


async def load_certificate_details(
    store: Store, certificate: Certificate
) -> CertificateDetails:
    course = await store.courses.get(certificate.course_id)
    learner = await store.users.get_by_id(certificate.learner_id)
    creator = (
        await store.users.get_by_id(course.creator_id) if course is not None else None
    )
    return CertificateDetails(
        certificate=certificate,
        course_title=course.title if course else "",
        course_description=course.description if course else "",
        learner_name=learner.full_name if learner else "",
        creator_name=creator.full_name if creator else "",
    )


class CertificateQueries:
    def __init__(self, provider: StoreProvider) -> None:
        self._provider = provider

    async def my_certificates(
        self, learner_id: UUID, *, limit: int, offset: int
    ) -> Page[CertificateDetails]:
        check_page_bounds(limit, offset)
        async with self._provider.transaction() as store:
            total = await store.certificates.count_for_learner(learner_id)
            certificates = await store.certificates.list_for_learner(
                learner_id, limit=limit, offset=offset
            )
            items = [await load_certificate_details(store, c) for c in certificates]
        return Page(items=items, total=total, limit=limit, offset=offset)

    async def get_certificate(
        self, learner_id: UUID, certificate_id: UUID
    ) -> CertificateDetails:
        async with self._provider.transaction() as store:
            certificate = await store.certificates.get(certificate_id)
            # Someone else's certificate looks exactly like a missing one.
            if certificate is None or certificate.learner_id != learner_id:
                raise CertificateNotFoundError()
            return await load_certificate_details(store, certificate)

    async def certificate_stats(
        self, creator_id: UUID, course_id: UUID, *, now: int | None = None
    ) -> CertificateStats:
        if now is None:
            now = int(datetime.datetime.now(datetime.UTC).timestamp())
        async with self._provider.transaction() as store:
            course = await store.courses.get(course_id)
            if course is None or course.creator_id != creator_id:
                raise CourseNotFoundError("Course not found or access denied")
            certificates = await store.certificates.list_for_course(course_id)

        return CertificateStats(
            total_certificates_issued=len(certificates),
            certificates_last_30_days=sum(
                1 for c in certificates if c.issued_at >= now - 30 * _DAY_SECONDS
            ),
            certificates_last_7_days=sum(
                1 for c in certificates if c.issued_at >= now - 7 * _DAY_SECONDS
            ),
            unique_certificate_holders=len({c.learner_id for c in certificates}),
        )
