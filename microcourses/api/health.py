"""Health and readiness endpoints.

  /health  liveness.  Always 200 while the process can answer; the body
           reports each dependency so dashboards can show "degraded".
  /ready   readiness.  503 when the data store is unreachable, so the
           load balancer stops routing progress writes to this instance.
           Redis is not critical: cache and queue degrade, the store
           remains the source of truth.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from redis.exceptions import RedisError

from microcourses.api.dependencies import get_store_provider
from microcourses.core.errors import StoreUnavailableError
from microcourses.db.redis import redis_pool
from microcourses.repos.store import StoreProvider

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_store(provider: StoreProvider) -> str:
    try:
        await provider.ping()
    except StoreUnavailableError:
        return "unavailable"
    return "ok"


async def _check_redis() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except (RedisError, OSError):
        logger.warning("Redis ping failed", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
async def health(
    provider: Annotated[StoreProvider, Depends(get_store_provider)],
) -> dict:
    checks = {
        "store": await _check_store(provider),
        "redis": await _check_redis(),
    }
    healthy = all(v in ("ok", "not_configured") for v in checks.values())
    return {"status": "ok" if healthy else "degraded", "checks": checks}


@router.get("/ready")
async def ready(
    provider: Annotated[StoreProvider, Depends(get_store_provider)],
) -> Response:
    if await _check_store(provider) != "ok":
        return Response(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            headers={"Retry-After": str(StoreUnavailableError.retry_after_seconds)},
        )
    return Response(status_code=status.HTTP_200_OK)
