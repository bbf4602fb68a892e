"""Database models module."""

from models.account import Account
from models.oauth_handshake import OAuthHandshake
from models.security_event import SecurityEvent, SecurityEventKind
from models.session import AuthSession
from models.vote import Vote, VoteType
from models.vote_allowance import VoteAllowance

__all__ = [
    "Account",
    "AuthSession",
    "OAuthHandshake",
    "SecurityEvent",
    "SecurityEventKind",
    "Vote",
    "VoteType",
    "VoteAllowance",
]
