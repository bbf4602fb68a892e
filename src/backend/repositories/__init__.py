"""Repository modules for database access."""

from repositories.account_repository import AccountRepository
from repositories.allowance_repository import AllowanceRepository
from repositories.handshake_repository import HandshakeRepository
from repositories.session_repository import SessionRepository
from repositories.vote_repository import VoteRepository

__all__ = [
    "AccountRepository",
    "AllowanceRepository",
    "HandshakeRepository",
    "SessionRepository",
    "VoteRepository",
]
