import asyncio
from unittest.mock import AsyncMock, patch

import pytest

import roadmap.main as main


@pytest.mark.asyncio
async def test_shutdown_waits_for_cancelled_consumers(database):
    """Остановка приложения дожидается завершения отмененной задачи консьюмеров"""
    started = asyncio.Event()
    stopped = asyncio.Event()

    async def consumers():
        started.set()
        try:
            await asyncio.Event().wait()
        finally:
            stopped.set()

    app = main.create_app(database)
    with patch.object(main.settings, "TESTING", False), patch.object(
        main, "create_topics", AsyncMock()
    ), patch.object(main, "start_consumers", consumers), patch.object(
        main, "close_kafka_producer", AsyncMock()
    ) as close_producer:
        async with main.lifespan(app):
            await started.wait()
            assert not stopped.is_set()

        assert stopped.is_set()
        close_producer.assert_awaited_once()
