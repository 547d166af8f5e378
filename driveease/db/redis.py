# driveease/db/redis.py
from __future__ import annotations
from typing import Optional
import asyncio
import logging
import time

import redis.asyncio as redis
from redis.exceptions import RedisError

from driveease.core.config import get_settings

logger = logging.getLogger(__name__)

# Transport-level failures; anything else is a programming error and propagates.
_TRANSPORT_ERRORS = (RedisError, OSError)


def normalize_url(url: str) -> str:
    """Upstash only accepts TLS connections: force rediss:// for its hosts."""
    if "upstash.io" in url and url.startswith("redis://"):
        return "rediss://" + url[len("redis://"):]
    return url


class CacheClient:
    """
    Process-wide cache capability: get / set_with_ttl / delete_by_prefix.

    Connects lazily and reconnects with a linear backoff (50ms per failure,
    capped at `max_backoff_s`). After `max_retries` consecutive failures the
    client gives up and every call becomes a no-op. Transport errors are
    logged and swallowed: callers only ever see a miss.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        client: Optional[redis.Redis] = None,
        max_retries: int = 10,
        max_backoff_s: float = 2.0,
    ):
        self.url = normalize_url(url) if url else None
        self.max_retries = max_retries
        self.max_backoff_s = max_backoff_s
        self._redis: Optional[redis.Redis] = client
        self._failures = 0
        self._retry_at = 0.0
        self._connect_lock = asyncio.Lock()

    @property
    def disabled(self) -> bool:
        if self._redis is not None:
            return False
        return not self.url or self._failures > self.max_retries

    async def _conn(self) -> Optional[redis.Redis]:
        if self._redis is not None:
            return self._redis
        async with self._connect_lock:
            # another coroutine may have connected or failed while we waited
            if self._redis is not None:
                return self._redis
            if self.disabled or time.monotonic() < self._retry_at:
                return None
            return await self._connect()

    async def _connect(self) -> Optional[redis.Redis]:
        client = redis.from_url(self.url, decode_responses=True)
        try:
            await client.ping()
        except _TRANSPORT_ERRORS as e:
            self._failures += 1
            self._retry_at = time.monotonic() + min(self._failures * 0.05, self.max_backoff_s)
            if self._failures > self.max_retries:
                logger.warning("redis reached max retries (%s); caching disabled", self.max_retries)
            else:
                logger.warning("redis connect failed attempt=%s err=%s", self._failures, e)
            await client.aclose()
            return None

        logger.info("redis connected url=%s", self.url.split("@")[-1])
        self._redis = client
        self._failures = 0
        return client

    async def _drop(self, op: str, err: Exception) -> None:
        logger.warning("redis %s failed, dropping connection err=%s", op, err)
        client, self._redis = self._redis, None
        self._failures += 1
        self._retry_at = time.monotonic() + min(self._failures * 0.05, self.max_backoff_s)
        if client is not None:
            try:
                await client.aclose()
            except _TRANSPORT_ERRORS:
                pass

    async def ping(self) -> bool:
        client = await self._conn()
        if client is None:
            return False
        try:
            return bool(await client.ping())
        except _TRANSPORT_ERRORS as e:
            await self._drop("ping", e)
            return False

    async def get(self, key: str) -> Optional[str]:
        client = await self._conn()
        if client is None:
            return None
        try:
            return await client.get(key)
        except _TRANSPORT_ERRORS as e:
            await self._drop("get", e)
            return None

    async def set_with_ttl(self, key: str, value: str, ttl: int) -> None:
        client = await self._conn()
        if client is None:
            return
        try:
            await client.set(key, value, ex=ttl)
        except _TRANSPORT_ERRORS as e:
            await self._drop("set", e)

    async def delete_by_prefix(self, prefix: str) -> int:
        """
        Delete every key starting with `prefix`. Uses SCAN rather than KEYS so
        a large namespace does not block the server. Returns keys removed.
        """
        client = await self._conn()
        if client is None:
            return 0
        try:
            keys = [k async for k in client.scan_iter(match=f"{prefix}*", count=500)]
            if not keys:
                return 0
            return int(await client.delete(*keys))
        except _TRANSPORT_ERRORS as e:
            await self._drop("delete_by_prefix", e)
            return 0

    async def close(self) -> None:
        client, self._redis = self._redis, None
        if client is not None:
            await client.aclose()


settings = get_settings()
cache_client: Optional[CacheClient] = None


async def connect():
    """
    Build the process-wide cache client. Never blocks startup: if REDIS_URL is
    empty or unreachable the client stays in pass-through mode.
    """
    global cache_client
    if not settings.REDIS_URL:
        logger.warning("No REDIS_URL configured, response caching disabled")
    cache_client = CacheClient(
        settings.REDIS_URL or None,
        max_retries=settings.redis_max_retries,
        max_backoff_s=settings.redis_max_backoff_s,
    )
    if settings.REDIS_URL and not await cache_client.ping():
        logger.warning("Initial Redis connection failed; running without cache until it recovers")


async def disconnect():
    global cache_client
    if cache_client:
        await cache_client.close()
        cache_client = None
        logger.info("Redis disconnected")


def get_cache() -> CacheClient:
    """
    Getter for the shared cache client. Falls back to a disabled client so
    callers never have to handle None.
    """
    return cache_client or CacheClient(None)
