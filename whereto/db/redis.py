"""Redis client shared by decision events and the selection lock."""

import redis.asyncio as redis

from whereto.core.config import get_settings

_client: redis.Redis | None = None


async def init_redis() -> None:
    """Connect to REDIS_URL. Startup fails if Redis does not answer PING."""
    global _client

    if _client is not None:
        return

    client = redis.from_url(get_settings().redis_url, decode_responses=True)
    await client.ping()
    _client = client


async def close_redis() -> None:
    global _client

    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    if _client is None:
        raise RuntimeError("Redis not initialized; init_redis() runs in the app lifespan")
    return _client
