"""Failed-login throttling for the admin console.

Failures are counted per (client IP, email) in Redis. The first failure
starts a window of ``AUTH_RATE_LIMIT_WINDOW_SECONDS``; when it expires Redis
drops the counter, so idle keys never accumulate and every worker process
sees the same count. A successful login clears the counter for that pair.
"""
from __future__ import annotations

import hashlib
import logging

from redis.exceptions import RedisError

from ..errors import InternalError
from ..infrastructure.redis import RedisClient

logger = logging.getLogger("storefront_admin.rate_limit")

AUTH_RATE_LIMIT_MAX_ATTEMPTS = 5
AUTH_RATE_LIMIT_WINDOW_SECONDS = 60
LOGIN_FAIL_KEY_PREFIX = "login_fail"
IP_FALLBACK_LENGTH = 8


class RateLimitExceededError(Exception):
    """Raised when a key has used up its attempts in the current window."""


def login_key(email: str, client_ip: str | None) -> str:
    if not email:
        raise ValueError("email is required for rate limiting")
    # Keys never carry the raw address
    email_hash = hashlib.sha256(email.strip().lower().encode()).hexdigest()
    ip_component = client_ip or f"unknown-ip-{email_hash[:IP_FALLBACK_LENGTH]}"
    return f"{LOGIN_FAIL_KEY_PREFIX}:{ip_component}:{email_hash}"


class LoginRateLimiter:
    def __init__(
        self,
        redis_client: RedisClient,
        max_attempts: int = AUTH_RATE_LIMIT_MAX_ATTEMPTS,
        window_seconds: int = AUTH_RATE_LIMIT_WINDOW_SECONDS,
    ) -> None:
        self._redis = redis_client
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds

    async def check(self, email: str, client_ip: str | None = None) -> str:
        """Return the counter key for this attempt.

        Raises:
            RateLimitExceededError: If the pair already failed too often
            InternalError: If Redis cannot be reached
        """
        key = login_key(email, client_ip)
        try:
            failures = await self._redis.get(key)
        except RedisError as exc:
            logger.error("Redis operation failed operation=GET key=%s error=%s", LOGIN_FAIL_KEY_PREFIX, exc)
            raise InternalError("Login could not be processed") from exc
        if failures is not None and int(failures) >= self.max_attempts:
            raise RateLimitExceededError
        return key

    async def record_failure(self, key: str) -> int:
        try:
            return await self._redis.incr_expiring(key, self.window_seconds)
        except RedisError as exc:
            logger.error("Redis operation failed operation=INCR key=%s error=%s", LOGIN_FAIL_KEY_PREFIX, exc)
            raise InternalError("Login could not be processed") from exc

    async def reset(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except RedisError as exc:
            # The counter still expires with its window
            logger.error("Redis operation failed operation=DEL key=%s error=%s", LOGIN_FAIL_KEY_PREFIX, exc)
