"""Prometheus scrape endpoint.

Plain-text exposition format, not JSON.  The HTTP middleware skips this
path so scrapes do not count as traffic.  The queue depth gauge is
refreshed on each scrape; the worker runs in a separate process and its
own counters are not visible here.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from redis.exceptions import RedisError

from microcourses.api.dependencies import get_task_queue
from microcourses.core.metrics import QUEUE_DEPTH
from microcourses.services.task_queue import CERTIFICATE_ISSUANCE_QUEUE, TaskQueue

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics(
    queue: Annotated[TaskQueue, Depends(get_task_queue)],
) -> Response:
    try:
        depth = await queue.queue_length(CERTIFICATE_ISSUANCE_QUEUE)
    except RedisError:
        pass  # keep the last known value
    else:
        QUEUE_DEPTH.labels(queue_name=CERTIFICATE_ISSUANCE_QUEUE).set(depth)

    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
