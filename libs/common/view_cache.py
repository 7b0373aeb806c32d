"""Redis-backed cache for public read views.

Keys are derived from the request path, so a mutation only has to name the
path it touched:

    cached = await get_cached_view(f"/api/communities/{community_id}")
    ...
    await cache_view(f"/api/communities/{community_id}", payload)

    # after an update
    await invalidate_path(f"/api/communities/{community_id}")

Every operation is fail-open: Redis errors are logged and behave like a miss.
When VIEW_CACHE_ENABLED is false every call is a no-op.
"""
import json
from typing import Any, Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.common.redis import get_redis

logger = get_logger(__name__)

KEY_PREFIX = "view:"


def _key(path: str) -> str:
    return KEY_PREFIX + path.rstrip("/")


def _enabled() -> bool:
    return get_settings().VIEW_CACHE_ENABLED


async def get_cached_view(path: str) -> Optional[Any]:
    """
    Look up a cached payload.

    Returns:
        The decoded payload, or None on a miss, when disabled, or when Redis
        is unavailable.
    """
    if not _enabled():
        return None
    try:
        redis = await get_redis()
        raw = await redis.get(_key(path))
    except Exception as e:
        logger.warning(f"View cache read failed for {path}: {e}")
        return None
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning(f"Discarding corrupt view cache entry for {path}")
        return None


async def cache_view(path: str, payload: Any, ttl: Optional[int] = None) -> bool:
    """
    Store a JSON-serializable payload under ``path``.

    Returns:
        True if stored, False if disabled or Redis unavailable
    """
    if not _enabled():
        return False
    ttl = ttl or get_settings().VIEW_CACHE_TTL_SECONDS
    try:
        redis = await get_redis()
        await redis.set(_key(path), json.dumps(payload, default=str), ex=ttl)
        return True
    except Exception as e:
        logger.warning(f"View cache write failed for {path}: {e}")
        return False


async def invalidate_path(path: str) -> int:
    """
    Drop the cached view for ``path`` and every view nested under it.

    Returns:
        Number of keys removed (0 when disabled or Redis unavailable)
    """
    if not _enabled():
        return 0
    key = _key(path)
    try:
        redis = await get_redis()
        keys = [key]
        for pattern in (f"{key}/*", f"{key}[?]*"):
            async for nested in redis.scan_iter(match=pattern):
                keys.append(nested)
        removed = await redis.delete(*keys)
        logger.debug(f"Invalidated {removed} cached view(s) under {path}")
        return removed
    except Exception as e:
        logger.warning(f"View cache invalidation failed for {path}: {e}")
        return 0
