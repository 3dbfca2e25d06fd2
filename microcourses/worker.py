"""Background worker process.

RUN:  python -m microcourses.worker

Consumes the certificate_issuance queue that the API fills when
CERTIFICATE_ISSUANCE=queue.  Same image as the API, different command:

  api:    uvicorn microcourses.main:app --host 0.0.0.0 --port 8000
  worker: python -m microcourses.worker

Each task carries (learner_id, course_id).  The handler runs the same
idempotent issuer the inline path uses, so a task that is delivered
after a certificate already exists just reports already_issued.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any
from uuid import UUID

from microcourses.core.config import SETTINGS
from microcourses.core.logging import setup_logging
from microcourses.core.metrics import CERTIFICATE_ISSUANCE_FAILURES, QUEUE_DEPTH
from microcourses.repos import store
from microcourses.services.certificate_issuer import CertificateIssuer
from microcourses.services.task_queue import (
    CERTIFICATE_ISSUANCE_QUEUE,
    TaskQueue,
    task_queue,
)

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("microcourses.worker")


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@register_handler(CERTIFICATE_ISSUANCE_QUEUE)
async def handle_certificate_issuance(payload: dict) -> None:
    learner_id = UUID(payload["learner_id"])
    course_id = UUID(payload["course_id"])
    issuer = CertificateIssuer(store.store_provider)
    result = await issuer.issue_if_eligible(learner_id, course_id)
    logger.info(
        "Issuance task outcome=%s",
        result.outcome,
        extra={"learner_id": str(learner_id), "course_id": str(course_id)},
    )


# ---------------------------------------------------------------------------
# Main worker loop
# ---------------------------------------------------------------------------


async def process_one(queue_name: str, queue: TaskQueue, *, timeout: int = 1) -> bool:
    """Dequeue and handle a single task.  Returns False if the queue was empty."""
    task = await queue.dequeue(queue_name, timeout=timeout)
    if task is None:
        return False

    handler = HANDLERS[queue_name]
    try:
        await handler(task.payload)
        logger.info("Task %s on [%s] completed", task.id, queue_name)
    except Exception:
        # No retry: a later completion event re-triggers issuance.
        if queue_name == CERTIFICATE_ISSUANCE_QUEUE:
            CERTIFICATE_ISSUANCE_FAILURES.inc()
        logger.exception("Task %s on [%s] failed", task.id, queue_name)
    return True


async def run_worker(queue: TaskQueue = task_queue) -> None:
    """Poll all registered queues and dispatch tasks to handlers."""
    queues = list(HANDLERS.keys())
    logger.info("Worker started, listening on queues: %s", queues)
    if not SETTINGS.queues_issuance:
        logger.warning(
            "CERTIFICATE_ISSUANCE=%s: the API issues inline and will not "
            "enqueue work for this worker",
            SETTINGS.certificate_issuance,
        )

    while True:
        for queue_name in queues:
            await process_one(queue_name, queue)
            QUEUE_DEPTH.labels(queue_name=queue_name).set(
                await queue.queue_length(queue_name)
            )


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
