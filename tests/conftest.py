"""
Pytest configuration file.
Each test gets its own SQLite database; Redis, Kafka and Celery are mocked.
"""
import os

os.environ["TESTING"] = "1"

from typing import AsyncGenerator, Generator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from roadmap.db.base import Base  # noqa: E402
from roadmap.db.session import Database  # noqa: E402
from roadmap.main import create_app  # noqa: E402
from roadmap.models import user, project, feature, discussion, notification  # noqa: E402,F401
from tests.mocks.services import (  # noqa: E402
    patch_redis,
    patch_kafka,
    patch_email,
    MockRedisCache,
    MockKafkaProducer,
)


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """Create test database tables for a single test."""
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield database

    await database.dispose()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


# Mock service fixtures
@pytest.fixture(autouse=True)
def mock_redis() -> Generator[MockRedisCache, None, None]:
    """Provide a mock Redis cache and patch the Redis functions."""
    mock_redis_instance, patches = patch_redis()
    for patch_item in patches:
        patch_item.start()

    yield mock_redis_instance

    for patch_item in patches:
        patch_item.stop()


@pytest.fixture(autouse=True)
def mock_kafka() -> Generator[MockKafkaProducer, None, None]:
    mock_kafka_instance, patches = patch_kafka()
    for patch_item in patches:
        patch_item.start()

    yield mock_kafka_instance

    for patch_item in patches:
        patch_item.stop()


@pytest.fixture(autouse=True)
def mock_email():
    """Вызовы send_notification.delay вместо реальной очереди"""
    with patch_email() as delay:
        yield delay


# HTTP client fixture
@pytest_asyncio.fixture
async def async_client(database) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async client for testing API endpoints."""
    app = create_app(database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
