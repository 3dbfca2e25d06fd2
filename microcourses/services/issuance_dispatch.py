"""Hand-off of "this course may now be complete" events to the issuer.

CERTIFICATE_ISSUANCE=inline  run the issuer inside the progress request
CERTIFICATE_ISSUANCE=queue   enqueue a certificate_issuance task for the
                             worker process (microcourses/worker.py)

Either way the progress write has already committed; callers treat any
exception raised here as an issuance failure, not a progress failure.
"""

from __future__ import annotations

import logging
from typing import Protocol
from uuid import UUID

from microcourses.services.certificate_issuer import CertificateIssuer
from microcourses.services.task_queue import CERTIFICATE_ISSUANCE_QUEUE, TaskQueue

logger = logging.getLogger(__name__)


class IssuanceDispatcher(Protocol):
    async def dispatch(self, learner_id: UUID, course_id: UUID) -> None: ...


class InlineIssuanceDispatcher:
    def __init__(self, issuer: CertificateIssuer) -> None:
        self._issuer = issuer

    async def dispatch(self, learner_id: UUID, course_id: UUID) -> None:
        result = await self._issuer.issue_if_eligible(learner_id, course_id)
        logger.debug(
            "Inline issuance learner=%s course=%s outcome=%s",
            learner_id,
            course_id,
            result.outcome,
        )


class QueuedIssuanceDispatcher:
    def __init__(self, queue: TaskQueue) -> None:
        self._queue = queue

    async def dispatch(self, learner_id: UUID, course_id: UUID) -> None:
        task = await self._queue.enqueue(
            CERTIFICATE_ISSUANCE_QUEUE,
            {"learner_id": str(learner_id), "course_id": str(course_id)},
        )
        logger.info(
            "Enqueued certificate issuance task=%s learner=%s course=%s",
            task.id,
            learner_id,
            course_id,
        )
