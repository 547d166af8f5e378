# driveease/api/caching.py
from typing import Any, Awaitable, Callable
import json
import logging

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder

from driveease.domain.repositories.response_cache_repo import ResponseCacheRepo

logger = logging.getLogger(__name__)


def _json_response(body: str, cache_status: str, status_code: int = 200) -> Response:
    return Response(
        content=body,
        status_code=status_code,
        media_type="application/json",
        headers={"X-Cache": cache_status},
    )


async def cached_json(
    request: Request,
    cache: ResponseCacheRepo,
    ttl: int,
    produce: Callable[[], Awaitable[Any]],
) -> Response:
    """
    Read-through cache for a JSON GET endpoint.
    The stored value is the exact body sent on the miss, so a hit returns it
    byte for byte. Exceptions from `produce` (HTTPException included) bubble
    up and nothing is stored.
    """
    key = cache.key(request.url.path, request.url.query)
    cached = await cache.lookup(key)
    if cached is not None:
        logger.debug("response_cache hit key=%s", key)
        return _json_response(cached, "HIT")

    body = json.dumps(jsonable_encoder(await produce()), separators=(",", ":"))
    response = _json_response(body, "MISS")
    await cache.store(key, body, ttl, response.status_code)
    logger.debug("response_cache miss key=%s ttl=%s bytes=%s", key, ttl, len(body))
    return response
