"""
Grant votes after a feature ships.

Same operation as POST /api/v1/votes/allowance/grant, for running by hand
or from a deploy pipeline without the internal API secret.

Run with: python -m scripts.grant_votes [--amount N] [--suggestion-id ID]
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import settings
from db.session import async_session_maker, close_db
from services.vote_service import VoteService


async def grant_votes(amount: int, suggestion_id: int | None = None) -> dict:
    """Top up every identity and optionally reward a suggestion's supporters."""
    async with async_session_maker() as db:
        service = VoteService(db)
        granted = await service.ledger.grant_to_all(amount)
        rewarded = 0
        if suggestion_id is not None:
            rewarded = await service.grant_to_supporters(suggestion_id)
        await db.commit()

    return {"granted_to_all": granted, "supporters_rewarded": rewarded}


async def main(amount: int, suggestion_id: int | None) -> None:
    print(f"Granting {amount} vote(s) to every identity (cap {settings.VOTE_ALLOWANCE_MAX})...")
    try:
        result = await grant_votes(amount, suggestion_id)
    finally:
        await close_db()

    print(f"✓ Updated {result['granted_to_all']} allowance(s)")
    if suggestion_id is not None:
        print(f"✓ Rewarded {result['supporters_rewarded']} supporter(s) of suggestion #{suggestion_id}")
    print("\nDone!")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Feature-shipped vote grant")
    parser.add_argument(
        "--amount",
        type=int,
        default=settings.VOTE_GRANT_AMOUNT,
        help="Votes to add per identity",
    )
    parser.add_argument(
        "--suggestion-id",
        type=int,
        default=None,
        help="Shipped suggestion; its upvoters also get the supporter bonus",
    )
    args = parser.parse_args()

    if args.amount < 1:
        parser.error("--amount must be at least 1")

    asyncio.run(main(args.amount, args.suggestion_id))
