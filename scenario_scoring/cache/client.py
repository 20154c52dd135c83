"""
Valkey connections for the returns memo cache.

The API process and each Celery population worker run their own event loop,
and a redis.asyncio pool cannot be shared across loops, so connections are
tracked per running loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from redis.asyncio import ConnectionPool, Redis

from scenario_scoring.core.config import settings
from scenario_scoring.core.logging import get_logger


logger = get_logger("cache.client")


@dataclass
class _LoopConnection:
    pool: ConnectionPool
    client: Redis | None = None


_connections: dict[int, _LoopConnection] = {}


def _loop_key() -> int:
    try:
        return id(asyncio.get_running_loop())
    except RuntimeError:
        # Sync callers (CLI startup) share one slot
        return 0


def _new_pool() -> ConnectionPool:
    return ConnectionPool.from_url(
        settings.valkey_url,
        max_connections=settings.valkey_max_connections,
        decode_responses=True,
        socket_timeout=settings.valkey_socket_timeout,
        socket_connect_timeout=settings.valkey_socket_timeout,
        retry_on_timeout=True,
        health_check_interval=30,
    )


async def init_valkey_pool() -> ConnectionPool:
    """Create the pool for the running loop if it does not exist yet."""
    key = _loop_key()
    conn = _connections.get(key)
    if conn is None:
        conn = _connections[key] = _LoopConnection(pool=_new_pool())
        logger.info(
            "Valkey pool created",
            extra={"loop_id": key, "max_connections": settings.valkey_max_connections},
        )
    return conn.pool


async def get_valkey_client() -> Redis:
    """Client bound to the running loop's pool."""
    await init_valkey_pool()
    conn = _connections[_loop_key()]
    if conn.client is None:
        conn.client = Redis(connection_pool=conn.pool)
    return conn.client


async def close_valkey_client() -> None:
    """Release the running loop's client and pool. Safe to call twice."""
    key = _loop_key()
    conn = _connections.pop(key, None)
    if conn is None:
        return
    if conn.client is not None:
        await conn.client.aclose()
    await conn.pool.disconnect()
    logger.info("Valkey pool closed", extra={"loop_id": key})


async def valkey_healthcheck() -> bool:
    """True when Valkey answers a PING within the socket timeout."""
    try:
        client = await get_valkey_client()
        pong = await asyncio.wait_for(
            client.ping(), timeout=settings.valkey_socket_timeout
        )
    except Exception as e:
        logger.warning(f"Valkey healthcheck failed: {e}")
        return False
    return pong is True or pong == "PONG"
