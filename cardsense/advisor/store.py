"""Advisor session store — save/load/clear questionnaire state in Redis.

One JSON document per user under "advisor:session:{user_id}", refreshed
with a sliding TTL on every save. Navigation fields are kept so a user
resumes on the step they left.

Reads and deletes degrade to "nothing stored" while Redis is down; saves
report the outage so the client keeps its local copy.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from cardsense.advisor.state import AdvisorFormState
from cardsense.config import settings
from cardsense.errors import SessionStoreUnavailableError

logger = logging.getLogger(__name__)

_KEY_PREFIX = "advisor:session:"


def _session_key(user_id: str) -> str:
    return f"{_KEY_PREFIX}{user_id}"


async def save_state(redis: aioredis.Redis, user_id: str, state: AdvisorFormState) -> None:
    """Store the state with a fresh TTL.

    Raises:
        SessionStoreUnavailableError: when Redis cannot be reached.
    """
    try:
        await redis.setex(
            _session_key(user_id),
            settings.engine.advisor_session_ttl,
            state.model_dump_json(),
        )
    except RedisError as exc:
        logger.warning("Advisor session not saved for user %s: %s", user_id, type(exc).__name__)
        raise SessionStoreUnavailableError(
            "Advisor progress could not be saved. Keep going; it will be saved on a later step."
        ) from exc


async def load_state(redis: aioredis.Redis, user_id: str) -> AdvisorFormState | None:
    """Stored state, or None when absent, unreadable, or Redis is down."""
    try:
        raw = await redis.get(_session_key(user_id))
        if not raw:
            return None
        try:
            return AdvisorFormState.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable advisor session for user %s", user_id)
            await redis.delete(_session_key(user_id))
            return None
    except RedisError as exc:
        logger.warning("Advisor session unavailable for user %s: %s", user_id, type(exc).__name__)
        return None


async def clear_state(redis: aioredis.Redis, user_id: str) -> bool:
    """Delete the stored state. Returns True if something was deleted."""
    try:
        return bool(await redis.delete(_session_key(user_id)))
    except RedisError as exc:
        logger.warning("Advisor session not cleared for user %s: %s", user_id, type(exc).__name__)
        return False
