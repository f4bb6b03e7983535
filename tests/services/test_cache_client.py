"""
Функции кэша импортируются до автопатча в conftest, поэтому здесь проверяются настоящие реализации
поверх подмененного redis_client.
"""
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from roadmap.cache.client import get_cache, set_cache, delete_cache, invalidate_pattern


@pytest.mark.asyncio
async def test_get_and_set_serialize_json():
    client = AsyncMock()
    client.get.return_value = '{"projects": [1, 2]}'
    with patch("roadmap.cache.client.redis_client", client):
        assert await get_cache("search:public:x") == {"projects": [1, 2]}
        await set_cache("search:public:x", {"projects": [1, 2]}, expires=300)

    client.set.assert_awaited_once_with("search:public:x", '{"projects": [1, 2]}', ex=300)


@pytest.mark.asyncio
async def test_cache_miss():
    client = AsyncMock()
    client.get.return_value = None
    with patch("roadmap.cache.client.redis_client", client):
        assert await get_cache("missing") is None


@pytest.mark.asyncio
async def test_unavailable_redis_is_not_fatal():
    client = AsyncMock()
    client.get.side_effect = RedisConnectionError("down")
    client.set.side_effect = RedisConnectionError("down")
    client.delete.side_effect = RedisConnectionError("down")
    client.keys.side_effect = RedisConnectionError("down")
    with patch("roadmap.cache.client.redis_client", client):
        assert await get_cache("key") is None
        assert await set_cache("key", {"a": 1}) is False
        assert await delete_cache("key") is False
        assert await invalidate_pattern("search:public:*") == 0


@pytest.mark.asyncio
async def test_invalidate_pattern_deletes_matching_keys():
    client = AsyncMock()
    client.keys.return_value = ["search:public:a", "search:public:b"]
    client.delete.return_value = 2
    with patch("roadmap.cache.client.redis_client", client):
        assert await invalidate_pattern("search:public:*") == 2

    client.delete.assert_awaited_once_with("search:public:a", "search:public:b")
