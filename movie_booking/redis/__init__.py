from typing import AsyncGenerator
from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool

from movie_booking.core.config import get_settings

settings = get_settings()

# shared by the show-listing cache and confirm idempotency keys
redis_pool = ConnectionPool.from_url(settings.REDIS_URL, max_connections=settings.REDIS_MAX_CONNECTIONS)
redis_client = Redis(connection_pool=redis_pool)


async def get_redis() -> AsyncGenerator[Redis, None]:
    yield redis_client


async def close_redis():
    await redis_client.aclose()
    await redis_pool.disconnect()
