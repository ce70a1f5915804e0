"""
Redis caching for inbox projections
Fail-open: when Redis is not configured or unreachable every lookup is a miss
"""

import json
import logging
from typing import Any, Optional

import redis

from .config import INBOX_CACHE_TTL, REDIS_URL

logger = logging.getLogger(__name__)


def get_redis_client() -> Optional[redis.Redis]:
    """Create a Redis client from REDIS_URL, or None when caching is disabled"""
    if not REDIS_URL:
        logger.debug("ℹ️ REDIS_URL not set - inbox caching disabled")
        return None

    # Mask password in URL for logging
    if "@" in REDIS_URL:
        url_parts = REDIS_URL.split("@")
        protocol = url_parts[0].split(":")[0]
        masked_url = f"{protocol}:****@{url_parts[1]}"
    else:
        masked_url = "****"
    logger.info(f"📡 Using Redis URL connection: {masked_url}")

    client = redis.from_url(
        REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30,
    )
    client.ping()
    logger.info("Redis connected successfully via URL")
    return client


class Cache:
    """Redis cache wrapper with automatic serialization"""

    def __init__(self, client: Optional[redis.Redis] = None):
        self.redis_client = client
        self._initialized = client is not None

    def _get_client(self) -> Optional[redis.Redis]:
        """Lazy load Redis client"""
        if not self._initialized:
            self._initialized = True
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                self.redis_client = None
        return self.redis_client

    def is_available(self) -> bool:
        return self._get_client() is not None

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = INBOX_CACHE_TTL) -> bool:
        """Set value in cache with TTL"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern (e.g., 'inbox:*')"""
        client = self._get_client()
        if not client:
            return 0

        try:
            keys = list(client.scan_iter(match=pattern))
            if keys:
                deleted = client.delete(*keys)
                logger.debug(f"✅ Cache DELETE pattern: {pattern} ({deleted} keys)")
                return deleted
            return 0
        except Exception as e:
            logger.error(f"❌ Cache delete pattern error for {pattern}: {e}")
            return 0


# Global cache instance
cache = Cache()


def build_inbox_key(
    viewer_id: str, tab: str = "all", status: Optional[str] = None, include_archived: bool = False
) -> str:
    """Build cache key for an inbox projection"""
    return f"inbox:{viewer_id}:{tab}:{status or 'any'}:{int(include_archived)}"
