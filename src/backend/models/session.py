"""
Server-side login session.

The session id is the only thing the browser holds (httpOnly cookie). A
session is valid iff ``now < expires_at``; expiry is evaluated on every
lookup, so a reaper only reclaims storage.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base

if TYPE_CHECKING:
    from models.account import Account


class AuthSession(Base):
    """Opaque session token bound to exactly one account."""

    __tablename__ = "sessions"

    # 256-bit random token, never reused
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    account_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)

    account: Mapped["Account"] = relationship("Account", back_populates="sessions")

    def __repr__(self) -> str:
        return f"<AuthSession(id={self.id[:8]}..., account={self.account_id})>"
