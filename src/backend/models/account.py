"""
Account model.

An account is created lazily on the first successful OAuth login for a
provider identity and reused on every later login. The provider user id is
the natural key: it carries the uniqueness constraint that makes account
creation an upsert under concurrent callbacks.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from uuid import uuid4

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base

if TYPE_CHECKING:
    from models.session import AuthSession


class Account(Base):
    """Board member identified by their OAuth provider identity."""

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Provider identity (stable id, never the mutable handle)
    provider_user_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)

    # Public profile, refreshed on every login
    provider_username: Mapped[str] = mapped_column(String(50))
    provider_display_name: Mapped[str] = mapped_column(String(100))
    provider_avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    sessions: Mapped[list["AuthSession"]] = relationship(
        "AuthSession", back_populates="account", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, username={self.provider_username})>"
