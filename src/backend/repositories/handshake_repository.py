"""
OAuth handshake repository.

Consumption is a single conditional UPDATE, so of any number of callbacks
carrying the same state at most one can ever claim it.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import delete, or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.oauth_handshake import OAuthHandshake


class HandshakeRepository:
    """Repository for pending login attempts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _get_rowcount(self, result: Any) -> int:
        return getattr(result, "rowcount", 0) or 0

    async def create(self, state: str, expires_at: datetime) -> OAuthHandshake:
        """Register a freshly generated state."""
        handshake = OAuthHandshake(state=state, expires_at=expires_at)
        self.db.add(handshake)
        await self.db.flush()
        return handshake

    async def consume(self, state: str, now: datetime) -> bool:
        """Claim an unexpired, unconsumed state. False if it was already used or never existed."""
        result = await self.db.execute(
            update(OAuthHandshake)
            .where(
                OAuthHandshake.state == state,
                OAuthHandshake.consumed_at.is_(None),
                OAuthHandshake.expires_at > now,
            )
            .values(consumed_at=now)
        )
        return self._get_rowcount(result) == 1

    async def delete_stale(self, now: datetime) -> int:
        """Drop expired or already consumed handshakes."""
        result = await self.db.execute(
            delete(OAuthHandshake).where(
                or_(OAuthHandshake.expires_at <= now, OAuthHandshake.consumed_at.is_not(None))
            )
        )
        return self._get_rowcount(result)
