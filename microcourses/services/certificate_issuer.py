"""Certificate issuance: exactly one certificate per (learner, course).

There is no application-level lock.  The only arbiter is the store's
unique constraint on (learner, course):

    1. certificate already exists       → already_issued  (fast path)
    2. course not complete              → not_eligible
    3. INSERT ... ON CONFLICT DO NOTHING
         row inserted                   → issued
         conflict (a concurrent call won) → already_issued

Step 1 is an optimisation only.  Two concurrent calls can both pass it;
step 3 still lets exactly one of them through.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal
from uuid import UUID

from microcourses.core.errors import CertificateAlreadyIssuedError
from microcourses.core.metrics import (
    CERTIFICATE_ISSUANCE_CONFLICTS,
    CERTIFICATES_ISSUED,
)
from microcourses.models.certificate import Certificate
from microcourses.repos.store import StoreProvider
from microcourses.services.completion import aggregate_completion

logger = logging.getLogger(__name__)

IssuanceOutcome = Literal["issued", "already_issued", "not_eligible"]


@dataclass(frozen=True, slots=True)
class IssuanceResult:
    outcome: IssuanceOutcome
    certificate: Certificate | None = None


def compute_serial_hash(
    learner_id: UUID, course_id: UUID, timestamp_ns: int, nonce: str
) -> str:
    """SHA-256 hex digest of "learner:course:timestamp_ns:nonce"."""
    material = f"{learner_id}:{course_id}:{timestamp_ns}:{nonce}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


def new_serial_hash(learner_id: UUID, course_id: UUID, timestamp_ns: int) -> str:
    return compute_serial_hash(
        learner_id, course_id, timestamp_ns, secrets.token_hex(16)
    )


class CertificateIssuer:
    def __init__(
        self,
        provider: StoreProvider,
        *,
        serial_factory: Callable[[UUID, UUID, int], str] = new_serial_hash,
    ) -> None:
        self._provider = provider
        self._serial_factory = serial_factory

    async def issue_if_eligible(
        self, learner_id: UUID, course_id: UUID
    ) -> IssuanceResult:
        async with self._provider.transaction() as store:
            existing = await store.certificates.get_for_learner_course(
                learner_id, course_id
            )
            if existing is not None:
                return IssuanceResult("already_issued", existing)

            completion = await aggregate_completion(store, learner_id, course_id)
            if not completion.is_complete:
                logger.debug(
                    "Not eligible learner=%s course=%s completed=%d/%d",
                    learner_id,
                    course_id,
                    completion.completed_lessons,
                    completion.total_lessons,
                )
                return IssuanceResult("not_eligible")

            now_ns = time.time_ns()
            certificate = Certificate.new(
                learner_id=learner_id,
                course_id=course_id,
                serial_hash=self._serial_factory(learner_id, course_id, now_ns),
                issued_at=now_ns // 1_000_000_000,
            )
            try:
                await store.certificates.insert(certificate)
            except CertificateAlreadyIssuedError:
                CERTIFICATE_ISSUANCE_CONFLICTS.inc()
                logger.info(
                    "Certificate race lost learner=%s course=%s",
                    learner_id,
                    course_id,
                )
                winner = await store.certificates.get_for_learner_course(
                    learner_id, course_id
                )
                return IssuanceResult("already_issued", winner)

        CERTIFICATES_ISSUED.inc()
        logger.info(
            "Certificate issued",
            extra={
                "learner_id": str(learner_id),
                "course_id": str(course_id),
                "serial_hash": certificate.serial_hash,
            },
        )
        return IssuanceResult("issued", certificate)
