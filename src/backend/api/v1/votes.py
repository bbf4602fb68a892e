"""
Vote management endpoints.

Anyone can vote: signed-in visitors vote as their account, everyone else
as their device fingerprint. Each identity has a small vote allowance that
is spent on new votes, refunded on retraction and topped up whenever a
feature ships.
"""

from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_voter_identity, require_internal_secret
from core.config import settings
from db.session import get_db
from schemas.vote import (
    AllowanceResponse,
    GrantRequest,
    GrantResponse,
    MyVotesResponse,
    VoteCreate,
    VoteResponse,
)
from services.vote_allowance import VoteAllowanceLedger, VoterIdentity
from services.vote_service import VoteService

logger = structlog.get_logger(__name__)

router = APIRouter()

MAX_SUGGESTIONS_PER_LOOKUP = 100

_MESSAGES = {
    "added": "Vote recorded",
    "removed": "Vote removed",
    "changed": "Vote changed",
}


@router.get("/allowance", response_model=AllowanceResponse)
async def get_allowance(
    identity: Annotated[VoterIdentity, Depends(get_voter_identity)],
    db: AsyncSession = Depends(get_db),
) -> AllowanceResponse:
    """Votes left for the caller."""
    remaining = await VoteAllowanceLedger(db).remaining_for(identity.key)
    return AllowanceResponse(remaining_votes=remaining, identity_kind=identity.kind)


@router.post("", response_model=VoteResponse)
async def toggle_vote(
    vote_data: VoteCreate,
    identity: Annotated[VoterIdentity, Depends(get_voter_identity)],
    db: AsyncSession = Depends(get_db),
) -> VoteResponse:
    """
    Cast, flip or retract a vote on a suggestion.

    - New vote: costs one vote; 403 when none are left
    - Same direction again: retracts and refunds
    - Other direction: flips at no cost
    """
    service = VoteService(db)

    try:
        outcome = await service.toggle(identity, vote_data.suggestion_id, vote_data.vote_type)
        if outcome.depleted:
            await db.rollback()
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"message": "No votes remaining", "remaining_votes": 0},
            )
        await db.commit()
    except IntegrityError:
        # A concurrent request from the same voter recorded this vote first
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Vote already being processed, please retry",
        )

    return VoteResponse(
        message=_MESSAGES[outcome.action],
        action=outcome.action,
        vote_type=outcome.vote_type,
        remaining_votes=outcome.remaining_votes,
    )


@router.get("/mine", response_model=MyVotesResponse)
async def get_my_votes(
    identity: Annotated[VoterIdentity, Depends(get_voter_identity)],
    suggestion_ids: str = Query("", description="Comma-separated suggestion ids"),
    db: AsyncSession = Depends(get_db),
) -> MyVotesResponse:
    """The caller's vote on each listed suggestion (null where none)."""
    try:
        ids = [int(part) for part in suggestion_ids.split(",") if part.strip()]
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="suggestion_ids must be comma-separated integers",
        )
    if len(ids) > MAX_SUGGESTIONS_PER_LOOKUP:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {MAX_SUGGESTIONS_PER_LOOKUP} suggestion ids per request",
        )

    votes = await VoteService(db).my_votes(identity, ids)
    return MyVotesResponse(votes=votes)


@router.post(
    "/allowance/grant",
    response_model=GrantResponse,
    dependencies=[Depends(require_internal_secret)],
)
async def grant_allowance(
    grant: Optional[GrantRequest] = None,
    db: AsyncSession = Depends(get_db),
) -> GrantResponse:
    """
    Feature-shipped grant, called by the automation agent.

    Everyone gets ``amount`` more votes (default VOTE_GRANT_AMOUNT), capped
    at VOTE_ALLOWANCE_MAX. When the shipped suggestion is named, its
    upvoters also get the supporter bonus.
    """
    grant = grant or GrantRequest()
    amount = grant.amount or settings.VOTE_GRANT_AMOUNT

    service = VoteService(db)
    granted = await service.ledger.grant_to_all(amount)
    rewarded = 0
    if grant.suggestion_id is not None:
        rewarded = await service.grant_to_supporters(grant.suggestion_id)
    await db.commit()

    logger.info(
        "feature_shipped_grant",
        amount=amount,
        identities=granted,
        suggestion_id=grant.suggestion_id,
        supporters_rewarded=rewarded,
    )
    return GrantResponse(granted_to_all=granted, amount=amount, supporters_rewarded=rewarded)
