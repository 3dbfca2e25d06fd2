"""Read-through cache for learner progress views.

GET /api/progress/courses/{id} is polled by the lesson player after every
progress report, so the aggregated view is cached per (learner, course):

    cache hit  → return cached JSON
    cache miss → aggregate from the store → populate → return

Entries are versioned.  Each (learner, course) pair has a generation
counter, and the view key embeds the generation read before the view was
built.  Every progress write and every unenroll bumps the counter
(INCR), so a reader that built its view from pre-write data stores it
under a key no later reader asks for.  A plain delete could not stop
that reader's set from landing after the write.

Every entry also carries a TTL (PROGRESS_CACHE_TTL), which expires
superseded generations and bounds staleness when a bump fails.

The cache never feeds the certificate issuer; eligibility is always
aggregated from the store inside the issuing transaction.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from uuid import UUID

from microcourses.core.metrics import CACHE_OPERATIONS
from microcourses.db.redis import redis_pool


def course_generation_key(learner_id: UUID, course_id: UUID) -> str:
    return f"progress-gen:{learner_id}:{course_id}"


def course_progress_key(learner_id: UUID, course_id: UUID, generation: int) -> str:
    return f"progress:{learner_id}:{course_id}:{generation}"


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value with a TTL (time to live)."""
        ...

    async def generation(self, key: str) -> int:
        """Current value of a counter; 0 if it was never bumped."""
        ...

    async def incr(self, key: str) -> int:
        """Atomically bump a counter and return the new value."""
        ...


class InMemoryCacheService:
    """In-memory cache for tests and local dev; TTLs are not enforced."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        value = self._store.get(key)
        CACHE_OPERATIONS.labels(operation="miss" if value is None else "hit").inc()
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def generation(self, key: str) -> int:
        return int(self._store.get(key, "0"))

    async def incr(self, key: str) -> int:
        value = int(self._store.get(key, "0")) + 1
        self._store[key] = str(value)
        return value


class RedisCacheService:
    """Redis-backed cache shared across all API instances."""

    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        value = await self._redis.get(f"{self._PREFIX}{key}")
        CACHE_OPERATIONS.labels(operation="miss" if value is None else "hit").inc()
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def generation(self, key: str) -> int:
        value = await self._redis.get(f"{self._PREFIX}{key}")
        return int(value) if value is not None else 0

    async def incr(self, key: str) -> int:
        return await self._redis.incr(f"{self._PREFIX}{key}")


async def invalidate_course_progress(
    cache: CacheService, learner_id: UUID, course_id: UUID
) -> None:
    """Retire every cached view of (learner, course) built before now."""
    await cache.incr(course_generation_key(learner_id, course_id))


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
