"""
Vote allowance repository.

Every mutation is a relative UPDATE evaluated by the database, never a
read-modify-write from the application tier: concurrent decrements cannot
double-spend and concurrent grants cannot lose increments.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.vote_allowance import VoteAllowance


def _capped_increment(amount: int, cap: int) -> Any:
    """SQL expression for ``min(remaining + amount, cap)``, portable across dialects."""
    return case(
        (VoteAllowance.remaining + amount > cap, cap),
        else_=VoteAllowance.remaining + amount,
    )


class AllowanceRepository:
    """Repository for vote allowance counters."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _get_rowcount(self, result: Any) -> int:
        """Safely get rowcount from result."""
        return getattr(result, "rowcount", 0) or 0

    async def get_remaining(self, identity_key: str) -> Optional[int]:
        """Current balance, or None if the identity has no row yet."""
        result = await self.db.execute(
            select(VoteAllowance.remaining).where(VoteAllowance.identity_key == identity_key)
        )
        return result.scalar_one_or_none()

    async def insert_if_absent(self, identity_key: str, remaining: int) -> bool:
        """
        Create the row for an identity.

        Runs in a savepoint so losing the race to a concurrent insert leaves
        the surrounding transaction usable. Returns False if the row already existed.
        """
        try:
            async with self.db.begin_nested():
                self.db.add(VoteAllowance(identity_key=identity_key, remaining=remaining))
            return True
        except IntegrityError:
            return False

    async def try_decrement(self, identity_key: str) -> bool:
        """Atomically spend one vote if, and only if, the balance is positive."""
        result = await self.db.execute(
            update(VoteAllowance)
            .where(VoteAllowance.identity_key == identity_key, VoteAllowance.remaining > 0)
            .values(remaining=VoteAllowance.remaining - 1)
        )
        return self._get_rowcount(result) == 1

    async def increment_capped(self, identity_key: str, amount: int, cap: int) -> bool:
        """Add to one balance without exceeding ``cap``. False when already at the cap."""
        result = await self.db.execute(
            update(VoteAllowance)
            .where(VoteAllowance.identity_key == identity_key, VoteAllowance.remaining < cap)
            .values(remaining=_capped_increment(amount, cap))
        )
        return self._get_rowcount(result) == 1

    async def grant_all(self, amount: int, cap: int) -> int:
        """Add ``amount`` to every known identity, bounded by ``cap``."""
        result = await self.db.execute(
            update(VoteAllowance)
            .where(VoteAllowance.remaining < cap)
            .values(
                remaining=_capped_increment(amount, cap),
                last_grant_at=datetime.now(timezone.utc),
            )
        )
        return self._get_rowcount(result)

    async def grant_to(self, identity_keys: Iterable[str], amount: int, cap: int) -> int:
        """Add ``amount`` to a specific set of identities, bounded by ``cap``."""
        keys = list(identity_keys)
        if not keys:
            return 0
        result = await self.db.execute(
            update(VoteAllowance)
            .where(VoteAllowance.identity_key.in_(keys), VoteAllowance.remaining < cap)
            .values(
                remaining=_capped_increment(amount, cap),
                last_grant_at=datetime.now(timezone.utc),
            )
        )
        return self._get_rowcount(result)
