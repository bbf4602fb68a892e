"""
Shared dependencies for API endpoints.

Includes:
- Session cookie authentication (optional: anonymous is a normal state)
- Voter identity resolution (account first, then device fingerprint)
- Internal shared-secret check for automation endpoints
"""

from typing import Annotated, Optional

import structlog
from fastapi import Cookie, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.security import constant_time_equals
from db.session import get_db
from models.account import Account
from models.security_event import SecurityEventKind
from services.fingerprint import fingerprint_request, get_client_ip
from services.oauth_provider import OAuthProviderClient, get_oauth_provider
from services.security_events import SecurityEventRecorder, get_security_recorder
from services.session_manager import SessionManager
from services.vote_allowance import VoterIdentity, resolve_voter_identity

logger = structlog.get_logger(__name__)


# =============================================================================
# Services
# =============================================================================


def get_recorder() -> SecurityEventRecorder:
    """Security event recorder; overridable in tests."""
    return get_security_recorder()


def get_provider() -> OAuthProviderClient:
    """Identity provider client; overridable in tests."""
    return get_oauth_provider()


async def get_session_manager(db: AsyncSession = Depends(get_db)) -> SessionManager:
    return SessionManager(db)


# =============================================================================
# Session Authentication (cookie-based)
# =============================================================================


async def get_current_account_optional(
    session_id: Annotated[Optional[str], Cookie(alias=settings.SESSION_COOKIE_NAME)] = None,
    session_manager: SessionManager = Depends(get_session_manager),
) -> Optional[Account]:
    """
    Resolve the session cookie to an account.

    Returns None for a missing, expired, unknown or malformed session id.
    Does not raise - every endpoint here works for anonymous visitors too.
    """
    if not session_id:
        return None
    return await session_manager.validate(session_id)


async def get_voter_identity(
    request: Request,
    account: Optional[Account] = Depends(get_current_account_optional),
) -> VoterIdentity:
    """The allowance identity for this request."""
    return resolve_voter_identity(account, fingerprint_request(request))


# =============================================================================
# Internal Automation
# =============================================================================


async def require_internal_secret(
    request: Request,
    x_internal_secret: Annotated[Optional[str], Header()] = None,
    recorder: SecurityEventRecorder = Depends(get_recorder),
) -> None:
    """
    Guard for endpoints called by the automation agent.

    An unset INTERNAL_API_SECRET disables these endpoints entirely.

    Raises:
        HTTPException: 401 if the header is missing or wrong.
    """
    if constant_time_equals(x_internal_secret, settings.INTERNAL_API_SECRET):
        return

    source = get_client_ip(request)
    logger.warning("internal_auth_failed", path=request.url.path, source=source)
    await recorder.record(
        SecurityEventKind.AUTH_FAILURE,
        source,
        request.url.path,
        "Invalid internal API secret",
    )
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
    )
