"""Redis service providing the shared async client."""
import logging
import time
from typing import Optional

import redis.asyncio as redis
from redis.asyncio.client import Redis
from redis.exceptions import ConnectionError, ResponseError

from multipart_storage.config import settings
from multipart_storage.core.exceptions import InternalServerException
from multipart_storage.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


class RedisClientManager:
    """Owns the Redis connection used by the session, chunk and delay-job stores."""

    def __init__(self, redis_client: Optional[Redis] = None, key_prefix: Optional[str] = None):
        self.redis: Optional[Redis] = redis_client
        self._connection_pool: Optional[redis.ConnectionPool] = None
        self.key_prefix = key_prefix or settings.redis_key_prefix

    @property
    def client(self) -> Redis:
        """Connected client; an unconnected manager is a server-side failure."""
        if self.redis is None:
            logger.error("Redis client requested before connect()")
            raise InternalServerException(details={"component": "redis"})
        return self.redis

    def key(self, *parts: str) -> str:
        """Namespace a key under the configured prefix."""
        return ":".join((self.key_prefix,) + tuple(str(p) for p in parts))

    async def connect(self) -> None:
        """Connect to Redis (single-node configuration)."""
        try:
            redis_url_value = (settings.redis_url or "").strip()

            # Explicit non-default URLs win over host/port
            use_url = bool(redis_url_value and redis_url_value != DEFAULT_REDIS_URL)

            if use_url:
                url_for_log = redis_url_value.split('@')[-1] if '@' in redis_url_value else redis_url_value
                logger.info("Connecting to Redis via URL: %s", url_for_log)
                self.redis = redis.from_url(
                    redis_url_value,
                    encoding="utf-8",
                    decode_responses=True,
                    max_connections=settings.redis_max_connections,
                    socket_timeout=settings.redis_connection_pool_timeout,
                    socket_connect_timeout=settings.redis_connection_pool_timeout,
                    retry_on_timeout=True,
                    health_check_interval=30,
                )
            else:
                logger.info("Connecting to Redis via host/port %s:%s", settings.redis_host, settings.redis_port)
                self._connection_pool = redis.ConnectionPool(
                    host=settings.redis_host,
                    port=settings.redis_port,
                    db=settings.redis_db,
                    password=settings.redis_password,
                    max_connections=settings.redis_max_connections,
                    socket_timeout=settings.redis_connection_pool_timeout,
                    socket_connect_timeout=settings.redis_connection_pool_timeout,
                    retry_on_timeout=True,
                    health_check_interval=30,
                    encoding="utf-8",
                    decode_responses=True,
                )
                self.redis = redis.Redis(connection_pool=self._connection_pool)

            await self.redis.ping()

            # Session metadata is written on every request, a read-only replica is unusable
            test_key = self.key(f"__test_write_{int(time.time())}")
            try:
                await self.redis.set(test_key, "test", ex=1)
                await self.redis.delete(test_key)
                logger.info("Redis connection established (single-node, writable)")
            except ResponseError as e:
                error_msg = str(e).lower()
                if "read only" in error_msg or "readonly" in error_msg:
                    raise ConnectionError(
                        "Redis connection failed: connected to a read-only replica, "
                        f"host={settings.redis_host}, port={settings.redis_port}"
                    )
                raise

        except Exception as e:
            logger.error(f"Redis connection failed: {e}")
            await self._release()
            raise

    async def _release(self) -> None:
        if self.redis is not None:
            try:
                await self.redis.aclose()
            except Exception as e:
                logger.warning(f"Error closing Redis client: {e}")
        if self._connection_pool is not None:
            try:
                await self._connection_pool.disconnect()
            except Exception as e:
                logger.warning(f"Error closing Redis pool: {e}")
        self.redis = None
        self._connection_pool = None

    async def disconnect(self) -> None:
        await self._release()
        logger.info("Redis connection closed")

    async def ping(self) -> bool:
        """Health probe used by the /health endpoint."""
        if self.redis is None:
            return False
        try:
            return bool(await self.redis.ping())
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False


# Global Redis client manager instance
redis_manager = RedisClientManager()


def get_redis_manager() -> RedisClientManager:
    """Return the global RedisClientManager instance."""
    return redis_manager
