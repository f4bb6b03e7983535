import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roadmap.api.router import api_router
from roadmap.core.config import settings
from roadmap.core.exceptions import register_exception_handlers
from roadmap.db.session import Database
from roadmap.messaging.consumers import start_consumers
from roadmap.messaging.producers import close_kafka_producer, create_topics
import roadmap.models.relationships  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    consumers_task = None
    if not settings.TESTING:
        await create_topics()
        consumers_task = asyncio.create_task(start_consumers())
    yield
    if consumers_task is not None:
        consumers_task.cancel()
        with suppress(asyncio.CancelledError):
            await consumers_task
    await close_kafka_producer()
    await app.state.db.dispose()


def create_app(database: Database = None) -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )
    app.state.db = database or Database(settings.database_url, echo=settings.SQL_ECHO)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/")
    def root():
        return {"message": "Welcome to Roadmap API"}

    @app.get("/health")
    def health():
        return {"status": "ok", "environment": settings.ENVIRONMENT}

    return app


app = create_app()
