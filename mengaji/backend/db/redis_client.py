import logging
from typing import Optional
import redis.asyncio as redis

from ..models.redis_models import UserSessionRedis

logger = logging.getLogger(__name__)

class RedisClient:
    """
    Redis client for login sessions. Nothing else is kept in Redis.
    """

    def __init__(self, pool: redis.ConnectionPool):
        self._redis = redis.Redis(connection_pool=pool, decode_responses=True)

    @staticmethod
    def _session_key(user_id: int) -> str:
        return f"users:{user_id}"

    # ===== User Session Management =====

    async def save_user_session(self, session: UserSessionRedis, ttl: int):
        """Stores the user's session in Redis with a TTL in seconds."""
        key = self._session_key(session.user_data.id)
        await self._redis.set(key, session.model_dump_json(), ex=ttl)

    async def get_user_session(self, user_id: int) -> Optional[UserSessionRedis]:
        """Fetches the user's session; None once it expired or was deleted."""
        session_json = await self._redis.get(self._session_key(user_id))
        return UserSessionRedis.model_validate_json(session_json) if session_json else None

    async def delete_user_session(self, user_id: int) -> int:
        """Removes the user's session. Returns the number of deleted keys."""
        return await self._redis.delete(self._session_key(user_id))

    async def ping(self) -> bool:
        return await self._redis.ping()
