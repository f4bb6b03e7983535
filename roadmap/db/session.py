from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


class Database:
    """Хэндл хранилища: движок и фабрика сессий, создается явно при старте приложения"""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = create_async_engine(url, echo=echo)
        self.session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

        if self.engine.dialect.name == "sqlite":
            # Каскадное удаление в SQLite работает только с включенными внешними ключами,
            # WAL нужен для чтения параллельно с записью из другой сессии
            @event.listens_for(self.engine.sync_engine, "connect")
            def _configure_sqlite(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.close()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as db:
            try:
                yield db
            finally:
                await db.close()

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    database: Database = request.app.state.db
    async with database.session() as db:
        yield db


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Одна транзакция на несколько операций записи: commit в конце или rollback при ошибке"""
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise


@asynccontextmanager
async def side_session(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Отдельная сессия на том же движке для побочных записей (уведомления, журнал).
    Ее откат не затрагивает объекты основной сессии запроса.
    """
    async with AsyncSession(db.bind, expire_on_commit=False) as side:
        yield side
