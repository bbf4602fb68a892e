"""
Vote allowance ledger.

Tracks how many votes each voter identity has left. Identities are either
an account (``user:<id>``) or an anonymous device fingerprint
(``anon:<fingerprint>``); a signed-in visitor always votes as the account,
and whatever the same browser had anonymously is not carried over.

The ledger never commits. Spending a vote and recording it belong to the
same transaction, which the caller owns.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from models.account import Account
from repositories.allowance_repository import AllowanceRepository

logger = structlog.get_logger(__name__)

ACCOUNT_PREFIX = "user:"
ANONYMOUS_PREFIX = "anon:"


@dataclass(frozen=True)
class VoterIdentity:
    """Who is voting, and the allowance key they spend from."""

    key: str
    kind: str
    account_id: Optional[str] = None
    fingerprint: Optional[str] = None

    @property
    def is_account(self) -> bool:
        return self.kind == "account"


def resolve_voter_identity(account: Optional[Account], fingerprint: str) -> VoterIdentity:
    """A valid session wins over the device fingerprint."""
    if account is not None:
        return VoterIdentity(
            key=f"{ACCOUNT_PREFIX}{account.id}",
            kind="account",
            account_id=account.id,
        )
    return VoterIdentity(
        key=f"{ANONYMOUS_PREFIX}{fingerprint}",
        kind="anonymous",
        fingerprint=fingerprint,
    )


class ConsumeOutcome(str, Enum):
    OK = "ok"
    DEPLETED = "depleted"


class VoteAllowanceLedger:
    """Per-identity vote counters with atomic spend and capped grants."""

    def __init__(
        self,
        db: AsyncSession,
        initial: Optional[int] = None,
        cap: Optional[int] = None,
    ):
        self.db = db
        self.allowances = AllowanceRepository(db)
        self.initial = settings.VOTE_ALLOWANCE_INITIAL if initial is None else initial
        self.cap = settings.VOTE_ALLOWANCE_MAX if cap is None else cap

    async def remaining_for(self, identity_key: str) -> int:
        """Votes left. An identity seen for the first time has the initial allowance."""
        remaining = await self.allowances.get_remaining(identity_key)
        return self.initial if remaining is None else remaining

    async def consume(self, identity_key: str) -> ConsumeOutcome:
        """
        Spend one vote.

        The decrement is conditional on a positive balance inside the UPDATE
        itself, so N concurrent calls against a balance of k succeed at most
        k times. The row is created lazily the first time an identity votes.
        """
        if await self.allowances.try_decrement(identity_key):
            return ConsumeOutcome.OK

        if await self.allowances.get_remaining(identity_key) is not None:
            logger.info("vote_allowance_depleted", identity=identity_key)
            return ConsumeOutcome.DEPLETED

        # First vote for this identity. Losing the insert race is fine:
        # whoever won created the same starting balance.
        await self.allowances.insert_if_absent(identity_key, self.initial)
        if await self.allowances.try_decrement(identity_key):
            return ConsumeOutcome.OK

        logger.info("vote_allowance_depleted", identity=identity_key)
        return ConsumeOutcome.DEPLETED

    async def refund(self, identity_key: str) -> None:
        """Give one vote back after a retraction, never beyond the cap."""
        if await self.allowances.increment_capped(identity_key, 1, self.cap):
            return

        if await self.allowances.get_remaining(identity_key) is None:
            await self.allowances.insert_if_absent(identity_key, self.initial)
            if await self.allowances.increment_capped(identity_key, 1, self.cap):
                return

        logger.info("vote_refund_capped", identity=identity_key, cap=self.cap)

    async def grant_to_all(self, amount: int) -> int:
        """
        Add ``amount`` to every known identity, capped at the maximum.

        Identities without a row are untouched: they already start with the
        initial allowance when first seen.
        """
        updated = await self.allowances.grant_all(amount, self.cap)
        logger.info("vote_allowance_granted_all", amount=amount, identities=updated)
        return updated

    async def grant_to(self, identity_keys: Iterable[str], amount: int) -> int:
        """Add ``amount`` to the given identities, capped at the maximum."""
        updated = await self.allowances.grant_to(identity_keys, amount, self.cap)
        logger.info("vote_allowance_granted", amount=amount, identities=updated)
        return updated
