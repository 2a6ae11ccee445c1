"""
Redis - Presence Cache Connection

One lazily created client per process. Presence lives under
`online:{user_id}` with the user's role class as the value.
"""
from typing import Optional
import logging

import redis.asyncio as redis

from app.config.constants import PRESENCE_KEY_PREFIX
from app.config.settings import settings

logger = logging.getLogger(__name__)

_redis: Optional[redis.Redis] = None


def redis_url() -> str:
    auth = f":{settings.REDIS_PASSWORD}@" if settings.REDIS_PASSWORD else ""
    return f"redis://{auth}{settings.REDIS_HOST}:{settings.REDIS_PORT}"


def presence_key(user_id: str) -> str:
    return f"{PRESENCE_KEY_PREFIX}{user_id}"


def presence_user_id(key) -> str:
    """Inverse of presence_key; tolerates clients that return bytes."""
    if isinstance(key, bytes):
        key = key.decode("utf-8")
    return key[len(PRESENCE_KEY_PREFIX):]


PRESENCE_KEY_PATTERN = f"{PRESENCE_KEY_PREFIX}*"


async def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        _redis = redis.Redis.from_url(
            redis_url(),
            decode_responses=True,
            socket_connect_timeout=settings.REDIS_CONNECT_TIMEOUT_SEC,
            health_check_interval=30,
        )
    return _redis


async def ping_redis(client: redis.Redis) -> bool:
    """True if the presence cache answers; failures are logged, not raised."""
    try:
        return bool(await client.ping())
    except Exception as e:
        logger.warning(f"[Redis] Presence cache unreachable: {e}")
        return False


async def close_redis():
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
