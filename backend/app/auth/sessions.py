"""Admin login sessions stored in Redis with expiry."""
from __future__ import annotations

import logging
import secrets

from redis.exceptions import RedisError

from ..errors import InternalError
from ..infrastructure.redis import RedisClient

logger = logging.getLogger("storefront_admin.sessions")

SESSION_KEY_PREFIX = "admin_session"
SESSION_ID_BYTES = 32


class SessionStore:
    """Maps an opaque session id to the email of the signed-in admin."""

    def __init__(self, redis_client: RedisClient, ttl_seconds: int) -> None:
        self._redis = redis_client
        self._ttl = ttl_seconds

    @staticmethod
    def _key(session_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}:{session_id}"

    async def create(self, email: str) -> str:
        session_id = secrets.token_hex(SESSION_ID_BYTES)
        try:
            await self._redis.set_expiring(self._key(session_id), email, self._ttl)
        except RedisError as exc:
            logger.error("Redis operation failed operation=SET key=%s error=%s", SESSION_KEY_PREFIX, exc)
            raise InternalError("Session could not be created") from exc
        return session_id

    async def get(self, session_id: str | None) -> str | None:
        if not session_id:
            return None
        try:
            return await self._redis.get(self._key(session_id))
        except RedisError as exc:
            logger.error("Redis operation failed operation=GET key=%s error=%s", SESSION_KEY_PREFIX, exc)
            return None

    async def revoke(self, session_id: str | None) -> None:
        if not session_id:
            return
        try:
            await self._redis.delete(self._key(session_id))
        except RedisError as exc:
            # An unrevoked session still expires after its TTL
            logger.error("Redis operation failed operation=DEL key=%s error=%s", SESSION_KEY_PREFIX, exc)
