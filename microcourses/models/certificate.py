from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Certificate:
    """Proof that a learner completed every lesson of a course.

    At most one per (learner_id, course_id).  Immutable once minted:
    unenrolling or lowering lesson progress afterwards leaves it in place.
    """

    id: UUID
    learner_id: UUID
    course_id: UUID
    serial_hash: str  # 64 lowercase hex chars (SHA-256)
    issued_at: int

    @staticmethod
    def new(
        *, learner_id: UUID, course_id: UUID, serial_hash: str, issued_at: int
    ) -> Certificate:
        return Certificate(
            id=uuid4(),
            learner_id=learner_id,
            course_id=course_id,
            serial_hash=serial_hash,
            issued_at=issued_at,
        )


@dataclass(frozen=True, slots=True)
class CertificateDetails:
    """A certificate joined with the names a verifier needs to see."""

    certificate: Certificate
    course_title: str
    course_description: str
    learner_name: str
    creator_name: str
