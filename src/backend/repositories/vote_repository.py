"""
Vote repository for database operations.

Stores the vote index: which identity voted which way on a suggestion.
"""

from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.vote import Vote, VoteType


class VoteRepository:
    """Repository for vote database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_vote_type(self, suggestion_id: int, voter_key: str) -> Optional[VoteType]:
        """Get the voter's current vote on a suggestion, if any."""
        result = await self.db.execute(
            select(Vote.vote_type).where(
                Vote.suggestion_id == suggestion_id,
                Vote.voter_key == voter_key,
            )
        )
        value = result.scalar_one_or_none()
        return VoteType(value) if value else None

    async def get_vote_types(
        self, voter_key: str, suggestion_ids: list[int]
    ) -> dict[int, Optional[VoteType]]:
        """Get the voter's votes on several suggestions at once."""
        votes: dict[int, Optional[VoteType]] = {sid: None for sid in suggestion_ids}
        if not suggestion_ids:
            return votes

        result = await self.db.execute(
            select(Vote.suggestion_id, Vote.vote_type).where(
                Vote.voter_key == voter_key,
                Vote.suggestion_id.in_(suggestion_ids),
            )
        )
        for suggestion_id, vote_type in result.all():
            votes[suggestion_id] = VoteType(vote_type)
        return votes

    async def add(self, suggestion_id: int, voter_key: str, vote_type: VoteType) -> Vote:
        """Record a new vote."""
        vote = Vote(suggestion_id=suggestion_id, voter_key=voter_key, vote_type=vote_type.value)
        self.db.add(vote)
        await self.db.flush()
        return vote

    async def change(self, suggestion_id: int, voter_key: str, vote_type: VoteType) -> bool:
        """Flip an existing vote to the other direction."""
        result = await self.db.execute(
            update(Vote)
            .where(Vote.suggestion_id == suggestion_id, Vote.voter_key == voter_key)
            .values(vote_type=vote_type.value)
        )
        return (getattr(result, "rowcount", 0) or 0) > 0

    async def remove(self, suggestion_id: int, voter_key: str) -> bool:
        """Retract a vote. Returns False if there was nothing to retract."""
        result = await self.db.execute(
            delete(Vote).where(Vote.suggestion_id == suggestion_id, Vote.voter_key == voter_key)
        )
        return (getattr(result, "rowcount", 0) or 0) > 0

    async def get_supporters(self, suggestion_id: int) -> list[str]:
        """Voter keys of everyone who upvoted a suggestion."""
        result = await self.db.execute(
            select(Vote.voter_key).where(
                Vote.suggestion_id == suggestion_id,
                Vote.vote_type == VoteType.UP.value,
            )
        )
        return list(result.scalars().all())
