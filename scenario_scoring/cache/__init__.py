"""Valkey (Redis-compatible) cache module."""

from .cache import Cache, cache_key
from .client import close_valkey_client, get_valkey_client, valkey_healthcheck


__all__ = [
    "Cache",
    "cache_key",
    "close_valkey_client",
    "get_valkey_client",
    "valkey_healthcheck",
]
