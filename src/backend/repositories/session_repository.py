"""
Session repository for database operations.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.session import AuthSession


class SessionRepository:
    """Repository for login session rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _get_rowcount(self, result: Any) -> int:
        """Safely get rowcount from result."""
        return getattr(result, "rowcount", 0) or 0

    async def create(self, session_id: str, account_id: str, expires_at: datetime) -> AuthSession:
        """Insert a new session row."""
        auth_session = AuthSession(id=session_id, account_id=account_id, expires_at=expires_at)
        self.db.add(auth_session)
        await self.db.flush()
        return auth_session

    async def get_active(self, session_id: str, now: datetime) -> Optional[AuthSession]:
        """Get an unexpired session together with its account."""
        result = await self.db.execute(
            select(AuthSession)
            .options(selectinload(AuthSession.account))
            .where(AuthSession.id == session_id, AuthSession.expires_at > now)
        )
        return result.scalar_one_or_none()

    async def extend(self, session_id: str, expires_at: datetime) -> bool:
        """Move a session's expiry forward (sliding renewal)."""
        result = await self.db.execute(
            update(AuthSession).where(AuthSession.id == session_id).values(expires_at=expires_at)
        )
        return self._get_rowcount(result) > 0

    async def delete(self, session_id: str) -> int:
        """Delete a session; deleting an absent session affects no rows."""
        result = await self.db.execute(delete(AuthSession).where(AuthSession.id == session_id))
        return self._get_rowcount(result)

    async def delete_expired(self, now: datetime) -> int:
        """Remove every session whose expiry has passed."""
        result = await self.db.execute(delete(AuthSession).where(AuthSession.expires_at <= now))
        return self._get_rowcount(result)
