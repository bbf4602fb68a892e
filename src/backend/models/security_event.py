"""Append-only audit log of authentication-relevant events."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class SecurityEventKind(str, Enum):
    """Kinds of events written by the auth flows."""

    LOGIN_SUCCESS = "login_success"
    LOGOUT = "logout"
    LOGOUT_ERROR = "logout_error"
    OAUTH_ERROR = "oauth_error"
    CSRF_ATTEMPT = "csrf_attempt"
    PROVIDER_EXCHANGE_FAILED = "provider_exchange_failed"
    PROFILE_FETCH_FAILED = "profile_fetch_failed"
    AUTH_FAILURE = "auth_failure"


class SecurityEvent(Base):
    """Never updated or deleted by the application."""

    __tablename__ = "security_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    kind: Mapped[str] = mapped_column(String(50), index=True)
    source_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    path: Mapped[str] = mapped_column(String(200))
    detail: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
