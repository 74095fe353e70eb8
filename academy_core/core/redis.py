# ruff: noqa: PLW0603
"""Shared async Redis client.

Only the progress heartbeat throttle talks to Redis, and it tolerates the
client being absent or failing (see `progress.throttle`). Key builders for
the throttle live here so tests and operators agree on the key layout.
"""

import redis.asyncio as redis

from academy_core.config import get_settings
from academy_core.core.logging import get_logger


logger = get_logger(__name__)

THROTTLE_PREFIX = "progress:throttle"
PLAYHEAD_PREFIX = "progress:playhead"

_client: redis.Redis | None = None


async def connect_redis() -> redis.Redis:
    """Create the pooled client and check it answers.

    Raises:
        redis.ConnectionError: Redis is unreachable; no client is kept.
    """
    global _client

    settings = get_settings()
    client = redis.from_url(
        settings.redis_url,
        decode_responses=True,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
    )
    try:
        await client.ping()
    except redis.ConnectionError:
        await client.aclose()
        raise

    _client = client
    logger.info("redis_connected", url=settings.redis_url)
    return client


async def close_redis() -> None:
    global _client

    if _client is None:
        return
    await _client.aclose()
    _client = None
    logger.info("redis_disconnected")


def get_redis() -> redis.Redis | None:
    return _client


async def redis_available() -> bool:
    """Ping the shared client; False when there is none or it stopped answering."""
    if _client is None:
        return False
    try:
        return bool(await _client.ping())
    except (redis.RedisError, OSError) as e:
        logger.warning("redis_ping_failed", error=str(e))
        return False


def progress_throttle_key(user_id: str, video_id: str) -> str:
    return f"{THROTTLE_PREFIX}:{user_id}:{video_id}"


def progress_playhead_key(user_id: str, video_id: str) -> str:
    """Highest playhead seen for the pair while its writes were throttled."""
    return f"{PLAYHEAD_PREFIX}:{user_id}:{video_id}"
