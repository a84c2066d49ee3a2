"""Read-through cache for learner-facing reads.

What is cached:

  progress:{user_id}     GET /v1/progress rows for one learner
  leaderboard:{limit}    GET /v1/leaderboard

Read-through: check the cache, on a miss read the store and populate
the entry.  Two invalidation mechanisms cover each other:

  1. TTL: every entry expires on its own, so a missed invalidation
     heals within minutes.
  2. Explicit: every write that changes progress or XP (block
     completion, assessment submission, progress upsert/refresh, badge
     check, user deletion or role change) queues the learner, and once
     the request's transaction commits invalidate_learner() drops that
     learner's progress entry and every leaderboard entry.

The Redis implementation is shared by all API instances; the in-memory
one is per process and ignores TTLs (tests clear it between runs).
"""

from __future__ import annotations

import json
from typing import Any, Protocol, runtime_checkable

from app.core.metrics import CACHE_OPERATIONS
from app.db.redis import redis_pool

PROGRESS_TTL_SECONDS = 300
LEADERBOARD_TTL_SECONDS = 60


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value with a TTL (time to live)."""
        ...

    async def delete(self, key: str) -> None:
        """Explicitly invalidate a cached entry."""
        ...

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching a glob pattern (e.g., 'leaderboard:*')."""
        ...


class InMemoryCacheService:
    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_pattern(self, pattern: str) -> None:
        prefix = pattern.rstrip("*")
        for k in [k for k in self._store if k.startswith(prefix)]:
            del self._store[k]


class RedisCacheService:
    """Redis-backed cache shared across all API instances."""

    _PREFIX = "academy:cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{key}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")

    async def delete_pattern(self, pattern: str) -> None:
        # SCAN, not KEYS: KEYS blocks the server while it walks every key.
        cursor = 0
        while True:
            cursor, keys = await self._redis.scan(
                cursor, match=f"{self._PREFIX}{pattern}", count=100
            )
            if keys:
                await self._redis.delete(*keys)
            if cursor == 0:
                break


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()


def progress_key(user_id: str) -> str:
    return f"progress:{user_id}"


def leaderboard_key(limit: int) -> str:
    return f"leaderboard:{limit}"


async def get_json(key: str) -> Any | None:
    raw = await cache_service.get(key)
    if raw is None:
        CACHE_OPERATIONS.labels(operation="miss").inc()
        return None
    CACHE_OPERATIONS.labels(operation="hit").inc()
    return json.loads(raw)


async def set_json(key: str, value: Any, ttl_seconds: int) -> None:
    await cache_service.set(key, json.dumps(value), ttl_seconds)


async def invalidate_learner(user_id: str) -> None:
    await cache_service.delete(progress_key(user_id))
    await cache_service.delete_pattern("leaderboard:*")
