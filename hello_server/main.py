import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from starlette.concurrency import run_in_threadpool

from hello_server.core.config import Settings, settings as default_settings
from hello_server.core.errors import register_error_handlers
from hello_server.core.limiter import RateLimiter, create_limiter
from hello_server.core.logging_config import init_application_logging
from hello_server.core.pipeline import build_middleware
from hello_server.core.utils.session_store import SessionStore
from hello_server.db.session import Database, DatabaseConnectionError
from hello_server.web import home

logger = logging.getLogger("hello_server.main")


def create_app(
    settings: Optional[Settings] = None,
    *,
    limiter: Optional[RateLimiter] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Build the application: middleware pipeline, routes and error handlers.

    Args:
        settings: Configuration; the environment-derived settings by default
        limiter: Rate limiter to use; a fresh one is built from settings
        database: Database for the session store; built from settings

    Nothing connects here. The database is checked in the lifespan, before
    the server accepts traffic.
    """
    settings = settings or default_settings
    limiter = limiter or create_limiter(settings)
    database = database or Database(settings.database_url)
    store = SessionStore(database, max_age=settings.session_max_age)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            await run_in_threadpool(database.connect)
        except DatabaseConnectionError as e:
            logger.error("%s", e)
            logger.error("Database connection error. Make sure the database is running.")
            raise
        purged = await run_in_threadpool(store.purge_expired)
        if purged:
            logger.info("Removed %d expired sessions", purged)
        logger.info(
            "Server is running on http://localhost:%d in %s mode.",
            settings.port,
            settings.environment,
        )
        logger.info("Press CTRL-C to stop.")
        yield
        database.dispose()

    # API docs are only exposed while developing
    docs_enabled = settings.is_development
    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        middleware=build_middleware(settings, limiter=limiter, store=store),
        openapi_url="/openapi.json" if docs_enabled else None,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
    )

    app.state.settings = settings
    app.state.limiter = limiter
    app.state.database = database
    app.state.session_store = store

    app.include_router(home.router, tags=["Web"])

    register_error_handlers(app, debug=settings.is_development)

    return app


init_application_logging(default_settings)

app = create_app()
