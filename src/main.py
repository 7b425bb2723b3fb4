"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.api import users
from src.api.dispatcher import RequestDispatcher
from src.api.router import create_router
from src.config import Settings, get_settings
from src.database import QueryExecutor, create_db_engine, init_db

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; the query executor lives as long as the app does."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the database connection on startup and release it on shutdown."""
        engine = create_db_engine(settings.database_url)
        init_db(engine)

        executor = QueryExecutor(engine)
        executor.open()
        app.state.db = executor
        app.state.dispatcher = RequestDispatcher(
            create_router(),
            executor,
            disconnect_poll_interval=settings.disconnect_poll_interval,
        )
        logger.info(f"{settings.app_name} ready ({settings.environment})")
        try:
            yield
        finally:
            executor.close()

    app = FastAPI(
        title=settings.app_name,
        description="CRUD API for users",
        version="0.1.0",
        lifespan=lifespan,
        # Documentation routes would shadow the catch-all dispatcher
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.include_router(users.router)
    return app


app = create_app()
