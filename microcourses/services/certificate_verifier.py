"""Public certificate verification by serial hash.

Read-only and unauthenticated.  An unknown hash and a malformed one get
the same answer (valid=False) so the endpoint reveals nothing
about the hash format.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from microcourses.core.metrics import CERTIFICATE_VERIFICATIONS
from microcourses.models.certificate import CertificateDetails
from microcourses.repos.store import StoreProvider
from microcourses.services.certificate_queries import load_certificate_details

logger = logging.getLogger(__name__)

_SERIAL_HASH_RE = re.compile(r"[0-9a-f]{64}")


@dataclass(frozen=True, slots=True)
class Verification:
    valid: bool
    certificate: CertificateDetails | None = None


class CertificateVerifier:
    def __init__(self, provider: StoreProvider) -> None:
        self._provider = provider

    async def verify(self, serial_hash: str) -> Verification:
        if not _SERIAL_HASH_RE.fullmatch(serial_hash):
            CERTIFICATE_VERIFICATIONS.labels(result="invalid").inc()
            return Verification(valid=False)

        async with self._provider.transaction() as store:
            certificate = await store.certificates.get_by_serial(serial_hash)
            if certificate is None:
                details = None
            else:
                details = await load_certificate_details(store, certificate)

        if details is None:
            CERTIFICATE_VERIFICATIONS.labels(result="invalid").inc()
            logger.info("Verification miss", extra={"serial_hash": serial_hash})
            return Verification(valid=False)

        CERTIFICATE_VERIFICATIONS.labels(result="valid").inc()
        return Verification(valid=True, certificate=details)
