"""
Vote-related Pydantic schemas.
"""

from typing import Optional

from pydantic import BaseModel, Field

from models.vote import VoteType


class VoteCreate(BaseModel):
    """Schema for casting, flipping or retracting a vote."""

    suggestion_id: int = Field(..., gt=0)
    vote_type: VoteType = VoteType.UP


class VoteResponse(BaseModel):
    """Result of a vote toggle."""

    message: str
    action: str  # added, removed, changed
    vote_type: Optional[VoteType] = None
    remaining_votes: int


class AllowanceResponse(BaseModel):
    """Remaining votes for the caller's resolved identity."""

    remaining_votes: int
    identity_kind: str  # account or anonymous


class MyVotesResponse(BaseModel):
    """The caller's vote per requested suggestion."""

    votes: dict[int, Optional[VoteType]]


class GrantRequest(BaseModel):
    """Feature-shipped grant issued by the automation agent."""

    amount: Optional[int] = Field(None, ge=1, le=100)
    suggestion_id: Optional[int] = Field(None, gt=0)


class GrantResponse(BaseModel):
    """How many ledger rows each grant touched."""

    granted_to_all: int
    amount: int
    supporters_rewarded: int = 0
