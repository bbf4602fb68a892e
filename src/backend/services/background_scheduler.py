"""
Background Scheduler Service

Manages scheduled background tasks using APScheduler:
- Session reaper (expired sessions, stale OAuth handshakes)

This runs in-process with the FastAPI application. Nothing here is needed
for correctness: expiry is enforced on every lookup, the reaper only
reclaims storage.
"""

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import settings
from db.session import async_session_maker
from repositories.handshake_repository import HandshakeRepository
from services.session_manager import SessionManager

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: AsyncIOScheduler | None = None


async def reap_sessions_once() -> dict:
    """Delete expired sessions and spent or expired handshakes."""
    async with async_session_maker() as db:
        sessions_removed = await SessionManager(db).reap_expired()
        handshakes_removed = await HandshakeRepository(db).delete_stale(datetime.now(timezone.utc))
        await db.commit()

    return {"sessions_removed": sessions_removed, "handshakes_removed": handshakes_removed}


async def session_reaper_job() -> None:
    """Scheduled wrapper around ``reap_sessions_once``; failures are logged and retried next run."""
    logger.info("Starting session reaper job...")

    try:
        result = await reap_sessions_once()
        logger.info(
            f"Session reaper completed: "
            f"sessions={result['sessions_removed']}, "
            f"handshakes={result['handshakes_removed']}"
        )
    except Exception as e:
        logger.error(f"Session reaper job failed: {e}", exc_info=True)


def get_scheduler() -> AsyncIOScheduler:
    """Get the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(timezone=timezone.utc)
    return _scheduler


async def start_scheduler() -> None:
    """Start the background scheduler with all jobs."""
    scheduler = get_scheduler()

    if scheduler.running:
        logger.info("Scheduler already running")
        return

    interval = settings.SESSION_REAPER_INTERVAL_MINUTES
    scheduler.add_job(
        session_reaper_job,
        trigger=IntervalTrigger(minutes=interval),
        id="session_reaper",
        name="Session Reaper",
        replace_existing=True,
        max_instances=1,
    )
    logger.info(f"Added session reaper job (every {interval} minutes)")

    scheduler.start()
    logger.info("Background scheduler started")


async def stop_scheduler() -> None:
    """Stop the background scheduler gracefully."""
    global _scheduler

    if _scheduler and _scheduler.running:
        logger.info("Stopping background scheduler...")
        _scheduler.shutdown(wait=True)
        logger.info("Background scheduler stopped")

    _scheduler = None


async def trigger_session_reap() -> dict:
    """
    Manually run the reaper.

    Useful for testing or manual intervention.
    """
    return await reap_sessions_once()
