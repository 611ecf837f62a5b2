"""
Redis Connection
One lazily created connection pool per process, backing the RQ generation
queue. The API never touches Redis when JOB_BACKEND is "inline".
"""

import logging
from typing import Optional
from urllib.parse import urlsplit

from redis import Redis, ConnectionPool
from redis.exceptions import RedisError

from app.core.config import settings

logger = logging.getLogger(__name__)


class Queues:
    """Queue names, in the priority order workers listen on them."""
    GENERATION = "generation"
    DEFAULT = "default"

    ALL = (GENERATION, DEFAULT)


def masked_url(url: str) -> str:
    """Redis URL with any credentials hidden, for logs and /health."""
    parts = urlsplit(url)
    if not parts.password and not parts.username:
        return url
    host = parts.hostname or ""
    port = f":{parts.port}" if parts.port else ""
    return f"{parts.scheme}://***@{host}{port}{parts.path}"


class RedisManager:
    """Owns the process-wide pool; RQ needs raw bytes, so responses are not decoded."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = None

    def get_connection(self) -> Redis:
        if self._client is None:
            self._pool = ConnectionPool.from_url(
                self.url,
                max_connections=10,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                decode_responses=False,
            )
            self._client = Redis(connection_pool=self._pool)
            logger.info(f"[Redis] Pool created for {masked_url(self.url)}")
        return self._client

    def health_check(self) -> dict:
        """{connected, redis_version?, error?, url}"""
        try:
            info = self.get_connection().info("server")
        except RedisError as e:
            logger.error(f"[Redis] Health check failed: {e}")
            return {"connected": False, "error": str(e), "url": masked_url(self.url)}
        return {
            "connected": True,
            "redis_version": info.get("redis_version", "unknown"),
            "url": masked_url(self.url),
        }

    def close(self):
        if self._pool is not None:
            self._pool.disconnect()
            logger.info("[Redis] Pool closed")
        self._pool = None
        self._client = None


_manager: Optional[RedisManager] = None


def get_redis_manager() -> RedisManager:
    global _manager
    if _manager is None:
        _manager = RedisManager()
    return _manager


def get_redis() -> Redis:
    return get_redis_manager().get_connection()


def redis_health_check() -> dict:
    return get_redis_manager().health_check()


__all__ = [
    "Queues",
    "RedisManager",
    "get_redis_manager",
    "get_redis",
    "redis_health_check",
    "masked_url",
]
