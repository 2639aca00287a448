"""Redis connection and utilities."""

import json
import logging
from collections.abc import Iterable
from typing import Any

import redis

from storefront.config import CACHE_TTL, CATEGORY_CACHE_TTL, REDIS_CONFIG

logger = logging.getLogger(__name__)

TAG_KEY_PREFIX = "tag:"


class RedisClient:
    def __init__(self):
        self.client = redis.Redis(**REDIS_CONFIG)

    @staticmethod
    def _tag_key(tag: str) -> str:
        return f"{TAG_KEY_PREFIX}{tag}"

    def get_json(self, key: str) -> Any | None:
        """Get JSON data from Redis. Unreachable cache reads as a miss."""
        try:
            data = self.client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        return json.loads(data.decode("utf-8")) if data else None

    def set_json(self, key: str, value: Any, ttl: int = CACHE_TTL, tags: Iterable[str] = ()) -> bool:
        """Set JSON data in Redis with TTL and register the key under each tag."""
        try:
            pipe = self.client.pipeline()
            pipe.setex(key, ttl, json.dumps(value, default=str))
            for tag in tags:
                tag_key = self._tag_key(tag)
                pipe.sadd(tag_key, key)
                # Tag sets must outlive the longest entry they index
                pipe.expire(tag_key, max(ttl, CATEGORY_CACHE_TTL))
            pipe.execute()
            return True
        except redis.RedisError as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False

    def invalidate_tag(self, tag: str) -> int:
        """Delete every key registered under a tag. Returns the number of keys removed."""
        tag_key = self._tag_key(tag)
        members = self.client.smembers(tag_key)
        keys = [m.decode("utf-8") if isinstance(m, bytes) else m for m in members]
        if keys:
            self.client.delete(*keys)
        self.client.delete(tag_key)
        return len(keys)

    def ping(self) -> bool:
        return bool(self.client.ping())


# Singleton instance
redis_client = RedisClient()
