import logging
import redis.asyncio as aioredis
from study_overlay.config import settings

logger = logging.getLogger(__name__)

_redis = None

async def get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(settings.redis_url, decode_responses=True, max_connections=20)
    return _redis

async def redis_health_check() -> bool:
    try:
        redis = await get_redis()
        pong = await redis.ping()
        return pong is True
    except Exception as e:
        logger.warning(f"Redis health check failed: {e}")
        return False

async def close_redis():
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None
