"""
Redis client for the durable tier.

Redis is optional. When it is not configured or not reachable the factory
returns None and the job store runs in-process only.
"""

import logging
from typing import Optional

import redis

from ..config.settings import RedisSettings

logger = logging.getLogger(__name__)


def create_redis_client(settings: RedisSettings) -> Optional["redis.Redis"]:
    """
    Connect to Redis.

    Returns:
        A connected client, or None if Redis is disabled or unreachable
    """
    if not settings.enabled:
        logger.debug("[Store] Redis not configured, durable tier disabled")
        return None

    try:
        if settings.url:
            client = redis.Redis.from_url(
                settings.url,
                decode_responses=True,
                socket_timeout=settings.socket_timeout,
                socket_connect_timeout=settings.socket_timeout,
            )
            # URL may embed a password
            target = "url from settings"
        else:
            client = redis.Redis(
                host=settings.host,
                port=settings.port,
                password=settings.password,
                db=settings.db,
                decode_responses=True,
                socket_timeout=settings.socket_timeout,
                socket_connect_timeout=settings.socket_timeout,
            )
            target = f"{settings.host}:{settings.port} db={settings.db}"
        client.ping()
    except redis.RedisError as e:
        logger.warning(f"[Store] Redis connection failed, running in-process only: {e}")
        return None

    logger.info(f"[Store] Redis connected: {target}")
    return client

