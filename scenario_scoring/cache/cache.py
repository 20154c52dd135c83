"""JSON cache wrapper over Valkey.

Cache failures are logged and degrade to a miss; callers always fall through
to the underlying source.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Union

from scenario_scoring.core.config import settings
from scenario_scoring.core.logging import get_logger

from .client import get_valkey_client

logger = get_logger("cache")

CACHE_PREFIX = "scenario_scoring"
CACHE_VERSION = "v1"


def cache_key(*parts: Union[str, int, float], prefix: str = "cache") -> str:
    """
    Generate a consistent cache key from parts.

    Usage:
        cache_key("SPY", "2020-02-01") -> "scenario_scoring:v1:cache:SPY:2020-02-01"
    """
    sanitized = [str(part).replace(":", "_") for part in parts]
    return f"{CACHE_PREFIX}:{CACHE_VERSION}:{prefix}:{':'.join(sanitized)}"


class Cache:
    """Typed cache wrapper with a namespace prefix and default TTL."""

    def __init__(self, prefix: str = "cache", default_ttl: Optional[int] = None):
        self.prefix = prefix
        self.default_ttl = default_ttl or settings.cache_default_ttl

    async def get(self, key: str) -> Optional[Any]:
        full_key = cache_key(key, prefix=self.prefix)
        try:
            client = await get_valkey_client()
            value = await client.get(full_key)
        except Exception as e:
            logger.warning(f"Cache get failed: {e}")
            return None

        if value is None:
            logger.debug(f"Cache miss: {full_key}")
            return None
        logger.debug(f"Cache hit: {full_key}")
        return json.loads(value)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        full_key = cache_key(key, prefix=self.prefix)
        try:
            client = await get_valkey_client()
            await client.set(full_key, json.dumps(value, default=str), ex=ttl or self.default_ttl)
            logger.debug(f"Cache set: {full_key}, TTL: {ttl or self.default_ttl}s")
            return True
        except Exception as e:
            logger.warning(f"Cache set failed: {e}")
            return False

    async def delete(self, key: str) -> bool:
        full_key = cache_key(key, prefix=self.prefix)
        try:
            client = await get_valkey_client()
            await client.delete(full_key)
            return True
        except Exception as e:
            logger.warning(f"Cache delete failed: {e}")
            return False
