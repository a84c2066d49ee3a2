"""Redis connection management.

Same shape as engine.py: with REDIS_URL set we build a connection pool,
without it redis_pool is None and the cache falls back to process
memory.  Redis only ever holds derived data here (cached progress lists
and leaderboards), so losing it costs a few extra queries and nothing
else.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis, mirrors lifespan_db().

    An unreachable Redis at startup is logged, not fatal.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured, cache is in-memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
