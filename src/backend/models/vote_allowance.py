"""
Vote allowance ledger rows.

One row per voter identity (``user:<account id>`` or ``anon:<fingerprint>``).
Rows are only ever changed through relative SQL updates so that concurrent
workers never lose an increment or spend below zero.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class VoteAllowance(Base):
    """Remaining votes for one identity."""

    __tablename__ = "vote_allowances"

    identity_key: Mapped[str] = mapped_column(String(80), primary_key=True)

    remaining: Mapped[int] = mapped_column(Integer, nullable=False)

    last_grant_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (CheckConstraint("remaining >= 0", name="ck_vote_allowances_non_negative"),)

    def __repr__(self) -> str:
        return f"<VoteAllowance(identity={self.identity_key}, remaining={self.remaining})>"
