"""
Vote service.

Toggles a voter's vote on a suggestion and keeps the allowance ledger in
step with the vote index:

- no vote yet: spend one vote and record it
- same direction again: retract it and refund the vote
- other direction: flip it, no allowance cost

Nothing here commits; the endpoint commits the vote and the allowance
change together.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from models.vote import VoteType
from repositories.vote_repository import VoteRepository
from services.vote_allowance import (
    ACCOUNT_PREFIX,
    ConsumeOutcome,
    VoteAllowanceLedger,
    VoterIdentity,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class VoteOutcome:
    action: str
    vote_type: Optional[VoteType]
    remaining_votes: int
    depleted: bool = False


class VoteService:
    """Coordinates the vote index with the allowance ledger."""

    def __init__(self, db: AsyncSession, ledger: Optional[VoteAllowanceLedger] = None):
        self.db = db
        self.votes = VoteRepository(db)
        self.ledger = ledger or VoteAllowanceLedger(db)

    async def toggle(
        self, identity: VoterIdentity, suggestion_id: int, vote_type: VoteType
    ) -> VoteOutcome:
        existing = await self.votes.get_vote_type(suggestion_id, identity.key)

        if existing == vote_type:
            # A concurrent retract may have deleted the row first; only one refunds
            if await self.votes.remove(suggestion_id, identity.key):
                await self.ledger.refund(identity.key)
            else:
                logger.info("vote_retract_noop", suggestion_id=suggestion_id)
            action, current = "removed", None
        elif existing is not None:
            await self.votes.change(suggestion_id, identity.key, vote_type)
            action, current = "changed", vote_type
        else:
            if await self.ledger.consume(identity.key) == ConsumeOutcome.DEPLETED:
                return VoteOutcome(
                    action="rejected",
                    vote_type=None,
                    remaining_votes=0,
                    depleted=True,
                )
            await self.votes.add(suggestion_id, identity.key, vote_type)
            action, current = "added", vote_type

        remaining = await self.ledger.remaining_for(identity.key)
        logger.info(
            "vote_toggled",
            suggestion_id=suggestion_id,
            action=action,
            identity_kind=identity.kind,
            remaining=remaining,
        )
        return VoteOutcome(action=action, vote_type=current, remaining_votes=remaining)

    async def my_votes(
        self, identity: VoterIdentity, suggestion_ids: list[int]
    ) -> dict[int, Optional[VoteType]]:
        return await self.votes.get_vote_types(identity.key, suggestion_ids)

    async def grant_to_supporters(self, suggestion_id: int, amount: Optional[int] = None) -> int:
        """
        Reward everyone who upvoted a suggestion that just shipped.

        Anonymous supporters are included: their fingerprint key is what
        they spend from.
        """
        amount = settings.VOTE_SUPPORTER_BONUS if amount is None else amount
        supporters = await self.votes.get_supporters(suggestion_id)
        if not supporters or amount <= 0:
            return 0

        rewarded = await self.ledger.grant_to(supporters, amount)
        logger.info(
            "supporters_rewarded",
            suggestion_id=suggestion_id,
            supporters=len(supporters),
            accounts=sum(1 for key in supporters if key.startswith(ACCOUNT_PREFIX)),
            rewarded=rewarded,
        )
        return rewarded
