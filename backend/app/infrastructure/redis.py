"""Redis connection shared by the admin backend.

Login sessions and failed-login counters live here. Every key is written
with an expiry, so it disappears on its own and is visible to every worker
process.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum, auto

from redis.asyncio import Redis, from_url

logger = logging.getLogger(__name__)

SOCKET_TIMEOUT_SECONDS = 5


class _RedisLifecycleState(Enum):
    """UNINITIALIZED -> INITIALIZED -> CLOSED, and CLOSED -> INITIALIZED on restart."""

    UNINITIALIZED = auto()
    INITIALIZED = auto()
    CLOSED = auto()


class RedisClient:
    """Async wrapper that creates its connection pool on first use."""

    def __init__(self, redis_url: str) -> None:
        self.redis_url = redis_url
        self._conn: Redis | None = None

    @property
    def connected(self) -> bool:
        return self._conn is not None

    async def connect(self) -> None:
        if self._conn is not None:
            return
        self._conn = from_url(
            self.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=SOCKET_TIMEOUT_SECONDS,
        )
        logger.info("Redis pool created")

    async def disconnect(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            await conn.aclose()
            logger.info("Redis pool closed")

    async def _conn_or_connect(self) -> Redis:
        if self._conn is None:
            await self.connect()
        assert self._conn is not None
        return self._conn

    async def set_expiring(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key``; Redis drops it after ``ttl_seconds``."""
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        conn = await self._conn_or_connect()
        await conn.set(key, value, ex=ttl_seconds)

    async def incr_expiring(self, key: str, ttl_seconds: int) -> int:
        """Increment the counter at ``key``; the first increment starts its expiry."""
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        conn = await self._conn_or_connect()
        count = int(await conn.incr(key))
        if count == 1:
            await conn.expire(key, ttl_seconds)
        return count

    async def get(self, key: str) -> str | None:
        conn = await self._conn_or_connect()
        return await conn.get(key)

    async def delete(self, key: str) -> None:
        conn = await self._conn_or_connect()
        await conn.delete(key)

    async def ping(self) -> bool:
        conn = await self._conn_or_connect()
        return bool(await conn.ping())


_redis_client: RedisClient | None = None
_redis_state: _RedisLifecycleState = _RedisLifecycleState.UNINITIALIZED
# Serializes init/close during startup and shutdown
_redis_lock: asyncio.Lock = asyncio.Lock()


async def init_redis(redis_url: str) -> RedisClient:
    """Create the process-wide client, or return it if it is already running."""
    global _redis_client, _redis_state

    async with _redis_lock:
        if _redis_state is _RedisLifecycleState.INITIALIZED and _redis_client is not None:
            return _redis_client

        previous = _redis_state
        client = RedisClient(redis_url)
        await client.connect()
        _redis_client = client
        _redis_state = _RedisLifecycleState.INITIALIZED
        logger.info("Redis client ready (was %s)", previous.name)
        return client


async def close_redis() -> None:
    """Close the process-wide client. Safe to call more than once."""
    global _redis_client, _redis_state

    async with _redis_lock:
        if _redis_state is not _RedisLifecycleState.INITIALIZED:
            return

        client, _redis_client = _redis_client, None
        _redis_state = _RedisLifecycleState.CLOSED
        if client is not None:
            await client.disconnect()
        logger.info("Redis client closed")


def get_redis() -> RedisClient:
    """
    Raises:
        RuntimeError: If called before init_redis() or after close_redis()
    """
    if _redis_state is not _RedisLifecycleState.INITIALIZED or _redis_client is None:
        raise RuntimeError(
            f"Redis client not initialized (state: {_redis_state.name}); "
            "call init_redis() at startup"
        )
    return _redis_client


def _reset_for_testing() -> None:
    global _redis_client, _redis_state
    _redis_client = None
    _redis_state = _RedisLifecycleState.UNINITIALIZED
