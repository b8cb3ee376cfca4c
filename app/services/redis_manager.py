import logging
from typing import Optional
from redis import asyncio as aioredis

from app.exceptions.scan import StorageUnavailable

logger = logging.getLogger(__name__)

class RedisManager:
    """
    Owns the Redis connection shared by the history store and the auth service.
    A failed connect leaves `redis` as None; callers then surface StorageUnavailable.
    """

    def __init__(self, url: str = "redis://localhost:6379", namespace: str = "agriscan"):
        self.url = url
        self.namespace = namespace
        self.redis: Optional[aioredis.Redis] = None

    async def connect(self):
        """Establish Redis connection"""
        try:
            self.redis = aioredis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5
            )
            # Test connection
            await self.redis.ping()
            logger.info(f"✅ Redis connected: {self.url}")
        except Exception as e:
            logger.error(f"❌ Redis connection failed: {e}")
            logger.warning("⚠️  History and accounts are unavailable until Redis is reachable")
            self.redis = None

    async def close(self):
        """Close Redis connection"""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("Redis connection closed")

    def key(self, *parts: str) -> str:
        return ":".join((self.namespace, *parts))

    def client(self) -> aioredis.Redis:
        if self.redis is None:
            raise StorageUnavailable("Redis is not connected")
        return self.redis
