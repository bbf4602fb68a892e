"""
Session manager.

Issues, validates and revokes server-side login sessions. A missing,
expired or malformed session id is the normal anonymous state, so
``validate`` answers None instead of raising. Expiry is checked on every
lookup; ``reap_expired`` only reclaims storage.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.security import generate_secure_token, is_well_formed_token
from models.account import Account
from models.session import AuthSession
from repositories.session_repository import SessionRepository

logger = structlog.get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    """Some drivers (SQLite) hand back naive datetimes; they are stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionManager:
    """Server-side session lifecycle."""

    def __init__(
        self,
        db: AsyncSession,
        ttl: Optional[timedelta] = None,
        sliding_renewal: Optional[bool] = None,
    ):
        self.db = db
        self.sessions = SessionRepository(db)
        self.ttl = ttl or timedelta(days=settings.SESSION_TTL_DAYS)
        self.sliding_renewal = (
            settings.SESSION_SLIDING_RENEWAL if sliding_renewal is None else sliding_renewal
        )

    async def issue(self, account_id: str) -> AuthSession:
        """
        Mint a new session for an account.

        Only flushes: the login callback commits account resolution and
        session issuance together, so either both land or neither does.
        """
        now = datetime.now(timezone.utc)
        auth_session = await self.sessions.create(
            session_id=generate_secure_token(),
            account_id=account_id,
            expires_at=now + self.ttl,
        )
        logger.info("session_issued", account_id=account_id, session=auth_session.id[:8])
        return auth_session

    async def validate(self, session_id: Optional[str]) -> Optional[Account]:
        """Resolve a session id to its account, or None."""
        if not is_well_formed_token(session_id):
            return None

        now = datetime.now(timezone.utc)
        try:
            auth_session = await self.sessions.get_active(session_id, now)
        except SQLAlchemyError as e:
            logger.error("session_lookup_failed", error=str(e))
            await self.db.rollback()
            return None

        if auth_session is None:
            return None

        account = auth_session.account
        if self.sliding_renewal:
            try:
                await self._maybe_renew(auth_session, now)
            except SQLAlchemyError as e:
                # The session is still valid; only its renewal was lost
                logger.warning("session_renewal_failed", session=auth_session.id[:8], error=str(e))
                self.db.expunge(account)
                await self.db.rollback()
        return account

    async def _maybe_renew(self, auth_session: AuthSession, now: datetime) -> None:
        """Push expiry forward once less than half of the TTL is left."""
        if _as_utc(auth_session.expires_at) - now >= self.ttl / 2:
            return
        await self.sessions.extend(auth_session.id, now + self.ttl)
        await self.db.commit()
        logger.debug("session_renewed", session=auth_session.id[:8])

    async def destroy(self, session_id: Optional[str]) -> None:
        """
        Revoke a session. Idempotent: absent or malformed ids are a no-op.

        Storage errors propagate so the caller can record them; logout
        clears the browser cookie regardless.
        """
        if not is_well_formed_token(session_id):
            return

        try:
            deleted = await self.sessions.delete(session_id)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        if deleted:
            logger.info("session_destroyed", session=session_id[:8])

    async def reap_expired(self) -> int:
        """Delete expired sessions; returns how many were removed."""
        count = await self.sessions.delete_expired(datetime.now(timezone.utc))
        await self.db.commit()
        return count
