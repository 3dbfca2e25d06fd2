"""Redis connection management.

Mirrors engine.py: when REDIS_URL is configured a shared async pool is
created at import time, otherwise redis_pool is None and every consumer
(progress view cache, issuance task queue) falls back to its in-memory
implementation.

Redis holds nothing authoritative here.  Cached progress views can be
recomputed from the store, and queued issuance tasks are re-derivable:
any later completion event for the same course re-runs the issuer.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from microcourses.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,  # return str instead of bytes
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis, mirrors lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured: cache and queue run in-memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        # Start anyway; /health reports redis as degraded until it recovers.
        logger.exception("Redis connection failed on startup")

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
