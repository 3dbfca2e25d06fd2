"""Certificate storage.

insert() is the exactly-once boundary: implementations must reject a
second row for the same (learner, course) by raising
CertificateAlreadyIssuedError, atomically with the insert itself.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from microcourses.core.errors import CertificateAlreadyIssuedError
from microcourses.models.certificate import Certificate


class CertificateRepo(Protocol):
    async def get(self, certificate_id: UUID) -> Certificate | None: ...
    async def get_for_learner_course(
        self, learner_id: UUID, course_id: UUID
    ) -> Certificate | None: ...
    async def get_by_serial(self, serial_hash: str) -> Certificate | None: ...
    async def insert(self, certificate: Certificate) -> None: ...
    async def list_for_learner(
        self, learner_id: UUID, *, limit: int, offset: int
    ) -> list[Certificate]: ...
    async def count_for_learner(self, learner_id: UUID) -> int: ...
    async def list_for_course(self, course_id: UUID) -> list[Certificate]: ...


class InMemoryCertificateRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Certificate] = {}
        self._by_pair: dict[tuple[UUID, UUID], Certificate] = {}
        self._by_serial: dict[str, Certificate] = {}

    async def get(self, certificate_id: UUID) -> Certificate | None:
        return self._by_id.get(certificate_id)

    async def get_for_learner_course(
        self, learner_id: UUID, course_id: UUID
    ) -> Certificate | None:
        return self._by_pair.get((learner_id, course_id))

    async def get_by_serial(self, serial_hash: str) -> Certificate | None:
        return self._by_serial.get(serial_hash)

    async def insert(self, certificate: Certificate) -> None:
        # No await between check and write: atomic on the event loop.
        pair = (certificate.learner_id, certificate.course_id)
        if pair in self._by_pair:
            raise CertificateAlreadyIssuedError(pair)
        if certificate.serial_hash in self._by_serial:
            raise ValueError("serial_hash already exists")
        self._by_id[certificate.id] = certificate
        self._by_pair[pair] = certificate
        self._by_serial[certificate.serial_hash] = certificate

    async def list_for_learner(
        self, learner_id: UUID, *, limit: int, offset: int
    ) -> list[Certificate]:
        mine = [c for c in self._by_id.values() if c.learner_id == learner_id]
        mine.sort(key=lambda c: c.issued_at, reverse=True)
        return mine[offset : offset + limit]

    async def count_for_learner(self, learner_id: UUID) -> int:
        return sum(1 for c in self._by_id.values() if c.learner_id == learner_id)

    async def list_for_course(self, course_id: UUID) -> list[Certificate]:
        return [c for c in self._by_id.values() if c.course_id == course_id]
