import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from roadmap.core.config import settings

logger = logging.getLogger(__name__)

# Создаем Redis-клиент
redis_client = redis.Redis(host=settings.REDIS_HOST, port=settings.REDIS_PORT, db=0, decode_responses=True)


async def get_cache(key: str) -> Optional[Any]:
    """
    Получает данные из кэша по ключу.
    Недоступный Redis считается промахом кэша.
    """
    try:
        data = await redis_client.get(key)
    except RedisError as e:
        logger.warning(f"Cache read failed for {key}: {e}")
        return None
    if data:
        return json.loads(data)
    return None


async def set_cache(key: str, value: Any, expires: int = 3600) -> bool:
    """
    Устанавливает данные в кэш с указанным временем жизни (по умолчанию 1 час)
    """
    serialized = json.dumps(value, default=str)
    try:
        return await redis_client.set(key, serialized, ex=expires)
    except RedisError as e:
        logger.warning(f"Cache write failed for {key}: {e}")
        return False


async def delete_cache(key: str) -> bool:
    """
    Удаляет данные из кэша по ключу
    """
    try:
        return bool(await redis_client.delete(key))
    except RedisError as e:
        logger.warning(f"Cache delete failed for {key}: {e}")
        return False


async def invalidate_pattern(pattern: str) -> int:
    """
    Удаляет все ключи, соответствующие шаблону
    """
    try:
        keys = await redis_client.keys(pattern)
        if keys:
            return await redis_client.delete(*keys)
    except RedisError as e:
        logger.warning(f"Cache invalidation failed for {pattern}: {e}")
    return 0
