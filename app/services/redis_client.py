# app/services/redis_client.py
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class FastRedisClient:
    """Pooled async Redis client shared by the API and the worker."""

    def __init__(self, redis_url: str | None = None):
        self.redis_url = redis_url or settings.REDIS_URL
        self.pool = None
        self.client = None
        self._initialized = False

    async def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        try:
            logger.info("Attempting Redis connection", url_preview=self.redis_url[:30] + "...")

            # Socket timeout must outlast the worker's blocking pop
            self.pool = ConnectionPool.from_url(
                self.redis_url,
                max_connections=20,
                retry_on_timeout=True,
                retry_on_error=[redis.ConnectionError, redis.TimeoutError],
                socket_connect_timeout=10,
                socket_timeout=settings.TASK_QUEUE_BLOCK_TIMEOUT_SECONDS + 10,
                health_check_interval=30,
                decode_responses=True,
            )

            self.client = redis.Redis(connection_pool=self.pool)

            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True
            logger.info("Fast Redis client initialized successfully", max_connections=20)

        except Exception as e:
            logger.error("Failed to initialize fast Redis client", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

    async def close(self):
        """Clean shutdown"""
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            self._initialized = False
            logger.info("Fast Redis client closed")
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))

    async def _ensure_initialized(self):
        """Ensure Redis is initialized, fallback if not"""
        if not self._initialized:
            logger.warning("Redis not initialized, attempting to initialize")
            await self.initialize()
            if not self._initialized:
                raise ConnectionError("Redis client not available")

    async def ping(self) -> bool:
        """Test Redis connection"""
        try:
            await self._ensure_initialized()
            result = await self.client.ping()
            return bool(result)
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    # List operations back the task queue. Failures propagate so a task is
    # never silently dropped.

    async def lpush(self, key: str, value: str) -> int:
        await self._ensure_initialized()
        return int(await self.client.lpush(key, value))

    async def blmove(self, source: str, destination: str, timeout: float) -> str | None:
        """Block until an item moves from the tail of source to the head of destination."""
        await self._ensure_initialized()
        return await self.client.blmove(source, destination, timeout, "RIGHT", "LEFT")

    async def lmove(self, source: str, destination: str) -> str | None:
        await self._ensure_initialized()
        return await self.client.lmove(source, destination, "RIGHT", "LEFT")

    async def lrem(self, key: str, value: str, count: int = 1) -> int:
        await self._ensure_initialized()
        return int(await self.client.lrem(key, count, value))

    async def llen(self, key: str) -> int:
        await self._ensure_initialized()
        return int(await self.client.llen(key))


# Global instance
fast_redis = FastRedisClient()
