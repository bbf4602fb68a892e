"""Schemas module initialization."""

from schemas.auth import AccountPublic, LogoutResponse, MeResponse, ProviderProfile, ProviderTokens
from schemas.vote import (
    AllowanceResponse,
    GrantRequest,
    GrantResponse,
    MyVotesResponse,
    VoteCreate,
    VoteResponse,
)

__all__ = [
    "AccountPublic",
    "AllowanceResponse",
    "GrantRequest",
    "GrantResponse",
    "LogoutResponse",
    "MeResponse",
    "MyVotesResponse",
    "ProviderProfile",
    "ProviderTokens",
    "VoteCreate",
    "VoteResponse",
]
