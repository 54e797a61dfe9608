"""Postgres engine, per-request sessions, the shared Redis client, and startup checks.

The recommendation endpoints open up to three sessions per request (the
request session plus the concurrent catalog and spend-history reads), so
pool sizing lives in settings rather than here.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncGenerator

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cardsense.config import settings

logger = logging.getLogger(__name__)

# ── PostgreSQL ───────────────────────────────────────────────────────

engine: AsyncEngine = create_async_engine(
    settings.db.database_url,
    echo=settings.log_level == "DEBUG",
    pool_size=settings.db.pool_size,
    max_overflow=settings.db.max_overflow,
    pool_pre_ping=True,
    pool_recycle=settings.db.pool_recycle_seconds,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; committed when the endpoint returns, rolled back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ── Redis ────────────────────────────────────────────────────────────

redis_client: aioredis.Redis = aioredis.from_url(
    settings.db.redis_url,
    decode_responses=True,
)


def get_redis() -> aioredis.Redis:
    return redis_client


# ── Lifespan ─────────────────────────────────────────────────────────


async def init_db() -> None:
    """Verify both stores; outside production, create missing tables.

    An existing schema is never altered. An unreachable Redis is only
    logged: rate limiting fails open and advisor sessions stay client-side.
    """
    async with engine.begin() as conn:
        from cardsense.models import Base

        if not settings.is_production:
            await conn.run_sync(Base.metadata.create_all)

    try:
        await redis_client.ping()
    except RedisError as exc:
        logger.warning("Redis unreachable at startup (%s); rate limits disabled until it returns", exc)


async def close_db() -> None:
    await engine.dispose()
    await redis_client.aclose()


@contextlib.asynccontextmanager
async def db_lifespan() -> AsyncGenerator[None, None]:
    await init_db()
    try:
        yield
    finally:
        await close_db()
