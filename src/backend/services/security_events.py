"""
Security event recorder.

Append-only audit trail for authentication flows. Each event is written in
its own short-lived session, so a rollback of the caller's transaction does
not drop the event and a failed write cannot poison the caller's session.
Recording is best-effort: failures are logged and swallowed, never raised
into the login, logout or callback logic that triggered them.
"""

from collections.abc import Callable
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import async_session_maker
from models.security_event import SecurityEvent, SecurityEventKind

logger = structlog.get_logger(__name__)

MAX_DETAIL_LENGTH = 500


class SecurityEventRecorder:
    """Writes security events; side effects only."""

    def __init__(self, session_factory: Callable[[], AsyncSession] = async_session_maker):
        self._session_factory = session_factory

    async def record(
        self,
        kind: SecurityEventKind | str,
        source_address: Optional[str],
        path: str,
        detail: Optional[str] = None,
    ) -> None:
        """Append one event. Never raises."""
        kind_value = kind.value if isinstance(kind, SecurityEventKind) else str(kind)
        if detail is not None:
            detail = detail[:MAX_DETAIL_LENGTH]

        logger.info("security_event", kind=kind_value, path=path, source=source_address)

        try:
            async with self._session_factory() as session:
                session.add(
                    SecurityEvent(
                        kind=kind_value,
                        source_address=source_address,
                        path=path,
                        detail=detail,
                    )
                )
                await session.commit()
        except Exception as e:
            logger.error(
                "security_event_write_failed",
                kind=kind_value,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )


_recorder: Optional[SecurityEventRecorder] = None


def get_security_recorder() -> SecurityEventRecorder:
    """Get the process-wide recorder."""
    global _recorder
    if _recorder is None:
        _recorder = SecurityEventRecorder()
    return _recorder
