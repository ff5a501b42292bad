"""Redis-based caching layer for validation results.

Validation is a pure function of the workflow content, so results are
keyed by the workflow's content digest and never need invalidation on
edit: an edited workflow simply has a new digest.

Cache key format: "validation:{digest}"
TTL: VALIDATION_CACHE_TTL seconds (5 minutes by default).
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from poweragent.core.config import settings

logger = logging.getLogger(__name__)

# Cache key prefix
VALIDATION_CACHE_PREFIX = "validation"

DEFAULT_CACHE_TTL = 300

# Upper bound on in-memory entries; the oldest entry is dropped beyond it
DEFAULT_MAX_MEMORY_ENTRIES = 1000


class ValidationCache:
    """Cache for validation results, keyed by workflow digest.

    Features:
    - Redis storage with per-entry TTL
    - Graceful degradation: Redis errors count as cache misses
    - In-memory fallback when no Redis URL is configured, swept of expired
      entries on write and capped at ``max_entries``

    Example:
        >>> cache = ValidationCache()
        >>> await cache.set(digest, result.model_dump(mode="json"))
        >>> await cache.get(digest)
        {'is_valid': True, ...}
    """

    def __init__(
        self,
        redis_url: str | None = None,
        ttl: int = DEFAULT_CACHE_TTL,
        max_entries: int = DEFAULT_MAX_MEMORY_ENTRIES,
    ):
        """Initialize the validation cache.

        Args:
            redis_url: Redis connection URL. In-memory storage when None.
            ttl: Cache TTL in seconds.
            max_entries: Maximum number of in-memory entries.
        """
        self.ttl = ttl
        self.max_entries = max(1, max_entries)
        self._pool: ConnectionPool | None = None
        self._redis: Redis | None = None
        self._in_memory_cache: dict[str, tuple[dict[str, Any], datetime]] = {}
        self._use_in_memory = False

        if redis_url:
            self._initialize_redis(redis_url)

        if self._redis is None:
            self._use_in_memory = True
            logger.info("Using in-memory cache for validation results")

    def _initialize_redis(self, redis_url: str) -> None:
        """Initialize the Redis connection pool.

        The pool connects lazily, so a bad URL surfaces here while an
        unreachable server surfaces as RedisError on first use.
        """
        try:
            self._pool = ConnectionPool.from_url(redis_url, decode_responses=True)
            self._redis = Redis(connection_pool=self._pool)
            logger.info("Validation cache initialized with Redis")
        except (RedisError, ValueError) as e:
            logger.warning(f"Failed to initialize Redis cache: {e}")
            self._pool = None
            self._redis = None

    @property
    def backend(self) -> str:
        """Name of the active storage backend."""
        return "memory" if self._use_in_memory else "redis"

    def _make_cache_key(self, digest: str) -> str:
        """Generate the cache key for a workflow digest."""
        return f"{VALIDATION_CACHE_PREFIX}:{digest}"

    async def get(self, digest: str) -> dict[str, Any] | None:
        """Get a cached validation result.

        Args:
            digest: Workflow content digest.

        Returns:
            Cached result dict, or None if not found or expired.
        """
        cache_key = self._make_cache_key(digest)

        if self._use_in_memory:
            entry = self._in_memory_cache.get(cache_key)
            if entry is not None:
                cached_data, expiry_time = entry
                if datetime.now(UTC) < expiry_time:
                    logger.debug(f"In-memory cache HIT: {cache_key}")
                    return dict(cached_data)
                del self._in_memory_cache[cache_key]
                logger.debug(f"In-memory cache expired: {cache_key}")
            logger.debug(f"In-memory cache MISS: {cache_key}")
            return None

        try:
            cached_data = await self._redis.get(cache_key)
        except RedisError as e:
            logger.warning(f"Redis get failed: {e}")
            return None

        if not cached_data:
            logger.debug(f"Redis cache MISS: {cache_key}")
            return None

        try:
            result = json.loads(cached_data)
        except json.JSONDecodeError as e:
            logger.warning(f"Cache deserialization failed: {e}")
            return None

        logger.debug(f"Redis cache HIT: {cache_key}")
        return result

    async def set(self, digest: str, result: dict[str, Any]) -> bool:
        """Cache a validation result with TTL.

        Args:
            digest: Workflow content digest.
            result: JSON-compatible result dict
                (``ValidationResult.model_dump(mode="json")``).

        Returns:
            True if cached, False otherwise.
        """
        cache_key = self._make_cache_key(digest)

        if self._use_in_memory:
            now = datetime.now(UTC)
            self._evict_expired(now)
            # Re-inserting moves the key to the newest position
            self._in_memory_cache.pop(cache_key, None)
            while len(self._in_memory_cache) >= self.max_entries:
                oldest_key = next(iter(self._in_memory_cache))
                del self._in_memory_cache[oldest_key]
                logger.debug(f"In-memory cache evicted: {oldest_key}")
            expiry_time = now + timedelta(seconds=self.ttl)
            self._in_memory_cache[cache_key] = (dict(result), expiry_time)
            logger.debug(f"In-memory cached: {cache_key} (TTL: {self.ttl}s)")
            return True

        try:
            await self._redis.setex(cache_key, self.ttl, json.dumps(result))
        except (RedisError, TypeError) as e:
            logger.warning(f"Redis set failed: {e}")
            return False

        logger.debug(f"Redis cached: {cache_key} (TTL: {self.ttl}s)")
        return True

    def _evict_expired(self, now: datetime) -> None:
        """Drop every in-memory entry whose TTL has passed."""
        expired = [
            key
            for key, (_, expiry_time) in self._in_memory_cache.items()
            if expiry_time <= now
        ]
        for key in expired:
            del self._in_memory_cache[key]
        if expired:
            logger.debug(f"In-memory cache swept {len(expired)} expired entries")

    async def delete(self, digest: str) -> bool:
        """Drop the cached result for a digest.

        Returns:
            True if the delete was carried out, False on backend failure.
        """
        cache_key = self._make_cache_key(digest)

        if self._use_in_memory:
            if self._in_memory_cache.pop(cache_key, None) is not None:
                logger.debug(f"In-memory cache invalidated: {cache_key}")
            return True

        try:
            await self._redis.delete(cache_key)
        except RedisError as e:
            logger.warning(f"Redis delete failed: {e}")
            return False

        logger.debug(f"Redis cache invalidated: {cache_key}")
        return True

    async def clear(self) -> None:
        """Drop every in-memory entry. Redis entries expire on their own."""
        self._in_memory_cache.clear()

    async def close(self) -> None:
        """Close the Redis connection pool."""
        if self._redis is not None:
            await self._redis.aclose()
        if self._pool is not None:
            await self._pool.disconnect()
            logger.info("Validation cache connection closed")


# Global cache instance (initialized from settings)
_global_cache: ValidationCache | None = None


def get_validation_cache() -> ValidationCache:
    """Get or create the global validation cache instance."""
    global _global_cache

    if _global_cache is None:
        redis_url = str(settings.REDIS_URL) if settings.REDIS_URL else None
        _global_cache = ValidationCache(
            redis_url=redis_url,
            ttl=settings.VALIDATION_CACHE_TTL,
            max_entries=settings.VALIDATION_CACHE_MAX_ENTRIES,
        )

    return _global_cache


async def reset_validation_cache() -> None:
    """Close and forget the global cache instance."""
    global _global_cache

    if _global_cache is not None:
        await _global_cache.close()
        _global_cache = None


__all__ = [
    "VALIDATION_CACHE_PREFIX",
    "ValidationCache",
    "get_validation_cache",
    "reset_validation_cache",
]
