"""Certificate endpoints.

Route order matters: /my-certificates, /verify/... and /stats/... are
declared before /{certificate_id} so they are not captured by it.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from microcourses.api.dependencies import (
    caller_id,
    get_certificate_queries,
    get_certificate_verifier,
    require_any_role,
    require_user,
)
from microcourses.api.pagination import LimitParam, OffsetParam, PageOut, page_out
from microcourses.models.certificate import CertificateDetails
from microcourses.models.page import DEFAULT_PAGE_LIMIT
from microcourses.models.principal import Principal
from microcourses.services.certificate_queries import CertificateQueries
from microcourses.services.certificate_verifier import CertificateVerifier

router = APIRouter(prefix="/api/certificates", tags=["certificates"])


class CertificateOut(BaseModel):
    id: str
    course_id: str
    serial_hash: str
    issued_at: int
    course_title: str
    course_description: str
    learner_name: str
    creator_name: str


class VerifiedCertificateOut(BaseModel):
    serialHash: str
    courseTitle: str
    courseDescription: str
    learnerName: str
    creatorName: str
    issuedAt: int


class VerificationOut(BaseModel):
    valid: bool
    certificate: VerifiedCertificateOut | None


class CertificateDownloadOut(BaseModel):
    message: str
    certificate: CertificateOut


class CertificateStatsOut(BaseModel):
    total_certificates_issued: int
    certificates_last_30_days: int
    certificates_last_7_days: int
    unique_certificate_holders: int


def _certificate_out(details: CertificateDetails) -> CertificateOut:
    cert = details.certificate
    return CertificateOut(
        id=str(cert.id),
        course_id=str(cert.course_id),
        serial_hash=cert.serial_hash,
        issued_at=cert.issued_at,
        course_title=details.course_title,
        course_description=details.course_description,
        learner_name=details.learner_name,
        creator_name=details.creator_name,
    )


@router.get("/my-certificates", response_model=PageOut[CertificateOut])
async def my_certificates(
    principal: Annotated[Principal, Depends(require_user)],
    queries: Annotated[CertificateQueries, Depends(get_certificate_queries)],
    limit: LimitParam = DEFAULT_PAGE_LIMIT,
    offset: OffsetParam = 0,
) -> PageOut[CertificateOut]:
    page = await queries.my_certificates(
        caller_id(principal), limit=limit, offset=offset
    )
    return page_out(page, _certificate_out)


@router.get("/verify/{serial_hash}", response_model=VerificationOut)
async def verify_certificate(
    serial_hash: str,
    verifier: Annotated[CertificateVerifier, Depends(get_certificate_verifier)],
) -> VerificationOut:
    """Public: anyone holding a serial hash can check it.  No auth."""
    verification = await verifier.verify(serial_hash)
    details = verification.certificate
    if not verification.valid or details is None:
        return VerificationOut(valid=False, certificate=None)
    return VerificationOut(
        valid=True,
        certificate=VerifiedCertificateOut(
            serialHash=details.certificate.serial_hash,
            courseTitle=details.course_title,
            courseDescription=details.course_description,
            learnerName=details.learner_name,
            creatorName=details.creator_name,
            issuedAt=details.certificate.issued_at,
        ),
    )


@router.get("/stats/{course_id}", response_model=CertificateStatsOut)
async def certificate_stats(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_any_role({"creator", "admin"}))],
    queries: Annotated[CertificateQueries, Depends(get_certificate_queries)],
) -> CertificateStatsOut:
    stats = await queries.certificate_stats(caller_id(principal), course_id)
    return CertificateStatsOut(
        total_certificates_issued=stats.total_certificates_issued,
        certificates_last_30_days=stats.certificates_last_30_days,
        certificates_last_7_days=stats.certificates_last_7_days,
        unique_certificate_holders=stats.unique_certificate_holders,
    )


@router.get("/{certificate_id}", response_model=CertificateOut)
async def get_certificate(
    certificate_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    queries: Annotated[CertificateQueries, Depends(get_certificate_queries)],
) -> CertificateOut:
    details = await queries.get_certificate(caller_id(principal), certificate_id)
    return _certificate_out(details)


@router.get("/{certificate_id}/download", response_model=CertificateDownloadOut)
async def download_certificate(
    certificate_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    queries: Annotated[CertificateQueries, Depends(get_certificate_queries)],
) -> CertificateDownloadOut:
    # No rendered document yet; the owner gets the certificate data back.
    details = await queries.get_certificate(caller_id(principal), certificate_id)
    return CertificateDownloadOut(
        message="PDF generation not yet implemented",
        certificate=_certificate_out(details),
    )
