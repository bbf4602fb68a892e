"""
OAuth callback validation.

Runs the login callback as a strict single pass:

1. state check (cookie vs. query, then server-side single-use claim)
2. code exchange with the PKCE verifier
3. profile fetch
4. account upsert keyed by provider identity
5. session issuance

Each step only runs if the previous one succeeded and nothing is retried;
a failed callback means the user starts a new login. Every outcome is
written to the security event log.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import httpx
import structlog
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from core.security import constant_time_equals
from models.account import Account
from models.security_event import SecurityEventKind
from models.session import AuthSession
from repositories.account_repository import AccountRepository
from repositories.handshake_repository import HandshakeRepository
from services.oauth_provider import OAuthProviderClient
from services.pkce import PendingHandshake
from services.security_events import SecurityEventRecorder
from services.session_manager import SessionManager

logger = structlog.get_logger(__name__)

CALLBACK_PATH = "/api/v1/auth/callback"


class LoginError(Exception):
    """Base class for callback failures. ``code`` is safe to show the browser."""

    code = "server_error"
    event_kind = SecurityEventKind.OAUTH_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class StateMismatch(LoginError):
    """State missing, different, expired or already used. Possible CSRF or replay."""

    code = "invalid_state"
    event_kind = SecurityEventKind.CSRF_ATTEMPT


class ProviderExchangeFailed(LoginError):
    """The token endpoint failed or rejected the code."""

    code = "provider_error"
    event_kind = SecurityEventKind.PROVIDER_EXCHANGE_FAILED


class ProfileFetchFailed(LoginError):
    """The profile could not be fetched or lacked required fields."""

    code = "profile_error"
    event_kind = SecurityEventKind.PROFILE_FETCH_FAILED


@dataclass(frozen=True)
class CompletedLogin:
    """Successful callback result."""

    account: Account
    session: AuthSession


class OAuthCallbackValidator:
    """Validates a provider callback and turns it into a session."""

    def __init__(
        self,
        db: AsyncSession,
        provider: OAuthProviderClient,
        recorder: SecurityEventRecorder,
        session_manager: Optional[SessionManager] = None,
    ):
        self.db = db
        self.provider = provider
        self.recorder = recorder
        self.handshakes = HandshakeRepository(db)
        self.accounts = AccountRepository(db)
        self.session_manager = session_manager or SessionManager(db)

    async def complete_login(
        self,
        returned_state: Optional[str],
        stored_state: Optional[str],
        code: str,
        stored_verifier: Optional[str],
        source_address: Optional[str] = None,
    ) -> CompletedLogin:
        """Run the callback state machine; raises a ``LoginError`` subclass on failure."""
        pending = PendingHandshake(state=stored_state, code_verifier=stored_verifier)
        try:
            await self._claim_state(returned_state, pending)
            tokens = await self._exchange(code, pending.code_verifier or "")
            profile = await self._fetch_profile(tokens.access_token)

            account = await self.accounts.upsert_from_profile(profile)
            auth_session = await self.session_manager.issue(account.id)
            await self.db.commit()
        except LoginError as err:
            await self.recorder.record(err.event_kind, source_address, CALLBACK_PATH, err.detail)
            raise

        logger.info("login_success", account_id=account.id)
        await self.recorder.record(
            SecurityEventKind.LOGIN_SUCCESS,
            source_address,
            CALLBACK_PATH,
            f"User: @{account.provider_username}",
        )
        return CompletedLogin(account=account, session=auth_session)

    async def _claim_state(self, returned_state: Optional[str], pending: PendingHandshake) -> None:
        if not returned_state or not pending.state:
            raise StateMismatch("Missing state")
        if not constant_time_equals(returned_state, pending.state):
            raise StateMismatch("State mismatch")
        if not pending.is_paired:
            # Never attempt an exchange with an empty verifier
            raise StateMismatch("Missing code verifier")

        claimed = await self.handshakes.consume(returned_state, datetime.now(timezone.utc))
        # Commit the claim on its own: it must stick even if later steps fail
        await self.db.commit()
        if not claimed:
            raise StateMismatch("State expired or already used")

    async def _exchange(self, code: str, code_verifier: str):
        try:
            return await self.provider.exchange_code(code, code_verifier)
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.warning("provider_exchange_failed", error_type=type(e).__name__)
            raise ProviderExchangeFailed(f"Token exchange failed: {type(e).__name__}") from e

    async def _fetch_profile(self, access_token: str):
        try:
            return await self.provider.fetch_profile(access_token)
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.warning("profile_fetch_failed", error_type=type(e).__name__)
            raise ProfileFetchFailed(f"Profile fetch failed: {type(e).__name__}") from e
