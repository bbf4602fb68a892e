"""
Pending OAuth handshake.

Only the ``state`` is persisted: the PKCE verifier lives exclusively in the
browser's httpOnly cookie. The row exists so the callback can mark the state
consumed exactly once, whatever the browser replays.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class OAuthHandshake(Base):
    """Single-use login attempt keyed by its state token."""

    __tablename__ = "oauth_handshakes"

    state: Mapped[str] = mapped_column(String(64), primary_key=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)

    # NULL until the callback claims it
    consumed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_consumed(self) -> bool:
        return self.consumed_at is not None
