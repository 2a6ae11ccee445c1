"""
Status Tracking Service - Online/Offline Presence

This service writes user presence in two places:
- The account record (`is_online` + `last_active_at`), which other
  subsystems read and which this layer owns while sessions are live
- Redis keys `online:{user_id}` for fast presence lookups

How it works:
1. Socket `register-user` -> set_user_online()
2. Socket disconnect -> set_user_offline()
3. Two devices for one user race freely, last write wins
"""
import logging
from typing import List, Optional

from app.config.redis import PRESENCE_KEY_PATTERN, get_redis, ping_redis, presence_key, presence_user_id
from app.services.directory import DirectoryService, directory_service

logger = logging.getLogger(__name__)


class StatusService:
    """Service to track and manage user online/offline status."""

    def __init__(self, directory: Optional[DirectoryService] = None, redis_getter=get_redis):
        self.directory = directory or directory_service
        self._get_redis = redis_getter

    async def set_user_online(self, user_id: str, role: str) -> bool:
        """
        Mark user as online.

        Returns:
            True if the account record was updated.
        """
        updated = await self.directory.set_presence(user_id, role, True)
        logger.info(f"[Status] User {user_id} ({role}) marked online (DB updated={updated})")

        try:
            redis = await self._get_redis()
            await redis.set(presence_key(user_id), role)
        except Exception as e:
            logger.error(f"[Status] Redis presence write failed for {user_id}: {e}")

        return updated

    async def set_user_offline(self, user_id: str, role: str) -> bool:
        """
        Mark user as offline.

        Returns:
            True if the account record was updated.
        """
        updated = await self.directory.set_presence(user_id, role, False)
        logger.info(f"[Status] User {user_id} ({role}) marked offline (DB updated={updated})")

        try:
            redis = await self._get_redis()
            await redis.delete(presence_key(user_id))
        except Exception as e:
            logger.error(f"[Status] Redis presence delete failed for {user_id}: {e}")

        return updated

    async def is_user_online(self, user_id: str) -> bool:
        """Check if user is online by checking Redis."""
        redis = await self._get_redis()
        return bool(await redis.exists(presence_key(user_id)))

    async def get_online_users(self) -> List[str]:
        """Get list of all currently online user IDs."""
        redis = await self._get_redis()
        user_ids = []
        async for key in redis.scan_iter(match=PRESENCE_KEY_PATTERN):
            user_ids.append(presence_user_id(key))
        return user_ids

    async def cache_available(self) -> bool:
        """Whether the Redis presence cache is reachable."""
        try:
            redis = await self._get_redis()
        except Exception as e:
            logger.warning(f"[Status] No presence cache client: {e}")
            return False
        return await ping_redis(redis)


# Singleton instance
status_service = StatusService()
