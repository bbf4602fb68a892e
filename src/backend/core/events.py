"""
Application lifecycle event handlers.

Startup creates the schema and starts the session reaper; shutdown stops
the reaper and releases the provider HTTP pool and database connections.
"""

from typing import Callable

import structlog
from fastapi import FastAPI

from core.config import settings
from db.session import close_db, init_db

logger = structlog.get_logger(__name__)


def create_start_app_handler(app: FastAPI) -> Callable:
    """Create startup event handler."""

    async def start_app() -> None:
        logger.info("app_starting", app=settings.APP_NAME, env=settings.APP_ENV)

        await init_db()
        logger.info("database_initialized")

        if settings.ENABLE_SESSION_REAPER:
            try:
                from services.background_scheduler import start_scheduler

                await start_scheduler()
            except Exception as e:
                logger.exception("scheduler_start_failed", error=str(e))
                logger.warning("expired sessions will not be reclaimed until restart")

        logger.info("app_started", app=settings.APP_NAME)

    return start_app


def create_stop_app_handler(app: FastAPI) -> Callable:
    """Create shutdown event handler."""

    async def stop_app() -> None:
        logger.info("app_stopping", app=settings.APP_NAME)

        try:
            from services.background_scheduler import stop_scheduler

            await stop_scheduler()
        except Exception as e:
            logger.warning("scheduler_stop_failed", error=str(e))

        from services.oauth_provider import close_oauth_provider

        await close_oauth_provider()
        await close_db()

        logger.info("app_stopped", app=settings.APP_NAME)

    return stop_app
