"""
Vote index.

Records which voter identity voted which way on a suggestion. Suggestions
themselves live outside this service, so ``suggestion_id`` is a plain integer.
"""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class VoteType(str, Enum):
    """Direction of a vote."""

    UP = "up"
    DOWN = "down"


class Vote(Base):
    """One voter's current vote on one suggestion."""

    __tablename__ = "votes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    suggestion_id: Mapped[int] = mapped_column(Integer, index=True)
    voter_key: Mapped[str] = mapped_column(String(80), index=True)
    vote_type: Mapped[str] = mapped_column(String(4), default=VoteType.UP.value)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("suggestion_id", "voter_key", name="uq_votes_suggestion_voter"),
        Index("ix_votes_suggestion_type", "suggestion_id", "vote_type"),
    )
