from typing import Optional
import logging

from driveease.db.redis import CacheClient

logger = logging.getLogger(__name__)


def request_key(namespace: str, path: str, query: str = "") -> str:
    """
    Build the cache key for a GET request.
    The full query string is part of the key: `/cars?page=1` and `/cars?page=2`
    are distinct entries.
    """
    return f"{namespace}:{path}?{query}" if query else f"{namespace}:{path}"


class ResponseCacheRepo:
    """
    Adapter storing full serialized response bodies in Redis.
    No business logic here, only lookup/store/invalidate under one namespace.
    """
    def __init__(self, cache: CacheClient, namespace: str):
        self.cache = cache
        self.namespace = namespace

    def key(self, path: str, query: str = "") -> str:
        return request_key(self.namespace, path, query)

    async def lookup(self, key: str) -> Optional[str]:
        """Return the stored body, or None on miss (including cache down)."""
        return await self.cache.get(key)

    async def store(self, key: str, body: str, ttl: int, status_code: int = 200) -> bool:
        """Store `body` for `ttl` seconds. Error responses are never cached."""
        if not 200 <= status_code < 300:
            logger.debug("response_cache skip key=%s status=%s", key, status_code)
            return False
        await self.cache.set_with_ttl(key, body, ttl)
        return True

    async def invalidate(self, namespace: Optional[str] = None) -> int:
        """Drop every entry under `namespace` (defaults to this repo's namespace)."""
        ns = namespace or self.namespace
        removed = await self.cache.delete_by_prefix(f"{ns}:")
        logger.info("response_cache invalidated namespace=%s keys=%s", ns, removed)
        return removed
