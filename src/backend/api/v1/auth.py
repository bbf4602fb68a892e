"""
Authentication endpoints.

Login is OAuth 2.0 authorization code + PKCE against a single identity
provider. The browser only ever holds opaque values in httpOnly cookies:
the state and code verifier for one login attempt (scoped to the auth
paths, ten minutes), and afterwards the session id.

Failures on the callback redirect back to the app with a short error
code; internal detail stays in the logs and the security event table.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import (
    get_current_account_optional,
    get_provider,
    get_recorder,
    get_session_manager,
)
from core.config import settings
from db.session import get_db
from models.account import Account
from models.security_event import SecurityEventKind
from repositories.handshake_repository import HandshakeRepository
from schemas.auth import AccountPublic, LogoutResponse, MeResponse
from services.fingerprint import get_client_ip
from services.oauth_callback import LoginError, OAuthCallbackValidator
from services.oauth_provider import OAuthProviderClient
from services.pkce import begin_login
from services.security_events import SecurityEventRecorder
from services.session_manager import SessionManager

logger = structlog.get_logger(__name__)

router = APIRouter()


def _app_redirect(auth_error: Optional[str] = None) -> RedirectResponse:
    """Redirect back to the app, optionally carrying a login error code."""
    url = settings.APP_BASE_URL.rstrip("/") + "/"
    if auth_error:
        url = f"{url}?{urlencode({'auth_error': auth_error})}"
    return RedirectResponse(url=url, status_code=302)


def _set_handshake_cookie(response: Response, key: str, value: str) -> None:
    response.set_cookie(
        key=key,
        value=value,
        max_age=settings.OAUTH_HANDSHAKE_TTL_SECONDS,
        path=settings.AUTH_COOKIE_PATH,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def _clear_handshake_cookies(response: Response) -> None:
    for key in (settings.STATE_COOKIE_NAME, settings.VERIFIER_COOKIE_NAME):
        response.delete_cookie(
            key=key,
            path=settings.AUTH_COOKIE_PATH,
            httponly=True,
            secure=settings.cookie_secure,
            samesite="lax",
        )


def _set_session_cookie(response: Response, session_id: str) -> None:
    # Path "/" so the vote endpoints see the session too
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_id,
        max_age=int(timedelta(days=settings.SESSION_TTL_DAYS).total_seconds()),
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def _clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


@router.get("/start")
async def start_login(db: AsyncSession = Depends(get_db)) -> RedirectResponse:
    """
    Begin a login.

    Generates a fresh state / verifier pair, registers the state server-side
    so it can be claimed exactly once, and redirects to the provider.
    """
    handshake = begin_login()

    expires_at = datetime.now(timezone.utc) + timedelta(seconds=settings.OAUTH_HANDSHAKE_TTL_SECONDS)
    await HandshakeRepository(db).create(handshake.state, expires_at)
    await db.commit()

    response = RedirectResponse(url=handshake.authorization_url, status_code=302)
    _set_handshake_cookie(response, settings.STATE_COOKIE_NAME, handshake.state)
    _set_handshake_cookie(response, settings.VERIFIER_COOKIE_NAME, handshake.code_verifier)

    logger.info("login_started", state=handshake.state[:8])
    return response


@router.get("/callback")
async def oauth_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    provider: OAuthProviderClient = Depends(get_provider),
    recorder: SecurityEventRecorder = Depends(get_recorder),
) -> RedirectResponse:
    """
    Provider redirect target.

    On success sets the session cookie and returns to the app. The
    handshake cookies are cleared on every outcome: a failed callback
    always means starting over.
    """
    source = get_client_ip(request)
    path = request.url.path

    if error:
        await recorder.record(SecurityEventKind.OAUTH_ERROR, source, path, f"Provider error: {error}")
        response = _app_redirect("denied")
        _clear_handshake_cookies(response)
        return response

    if not code or not state:
        await recorder.record(SecurityEventKind.OAUTH_ERROR, source, path, "Missing code or state")
        response = _app_redirect("missing_params")
        _clear_handshake_cookies(response)
        return response

    validator = OAuthCallbackValidator(db, provider, recorder)
    try:
        login = await validator.complete_login(
            returned_state=state,
            stored_state=request.cookies.get(settings.STATE_COOKIE_NAME),
            code=code,
            stored_verifier=request.cookies.get(settings.VERIFIER_COOKIE_NAME),
            source_address=source,
        )
    except LoginError as e:
        logger.warning("login_failed", reason=e.code)
        response = _app_redirect(e.code)
        _clear_handshake_cookies(response)
        return response
    except Exception as e:
        try:
            await db.rollback()
        except SQLAlchemyError:
            logger.warning("login_callback_rollback_failed")
        logger.exception("login_callback_error", error_type=type(e).__name__)
        await recorder.record(
            SecurityEventKind.OAUTH_ERROR, source, path, f"Callback error: {type(e).__name__}"
        )
        response = _app_redirect("server_error")
        _clear_handshake_cookies(response)
        return response

    response = _app_redirect()
    _set_session_cookie(response, login.session.id)
    _clear_handshake_cookies(response)
    return response


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    request: Request,
    response: Response,
    session_manager: SessionManager = Depends(get_session_manager),
    recorder: SecurityEventRecorder = Depends(get_recorder),
) -> LogoutResponse:
    """
    Log out.

    Server-side revocation is best effort; the cookie is cleared and
    success reported regardless, so the browser is always logged out.
    """
    source = get_client_ip(request)
    session_id = request.cookies.get(settings.SESSION_COOKIE_NAME)

    try:
        await session_manager.destroy(session_id)
        if session_id:
            await recorder.record(SecurityEventKind.LOGOUT, source, request.url.path)
    except Exception as e:
        logger.error("logout_revoke_failed", error_type=type(e).__name__)
        await recorder.record(
            SecurityEventKind.LOGOUT_ERROR,
            source,
            request.url.path,
            f"Session revoke failed: {type(e).__name__}",
        )

    _clear_session_cookie(response)
    return LogoutResponse(success=True)


@router.get("/me", response_model=MeResponse)
async def get_me(
    account: Optional[Account] = Depends(get_current_account_optional),
) -> MeResponse:
    """The signed-in account's public profile, or ``{"user": null}``."""
    if account is None:
        return MeResponse(user=None)

    return MeResponse(
        user=AccountPublic(
            id=account.id,
            username=account.provider_username,
            name=account.provider_display_name,
            avatar=account.provider_avatar_url,
        )
    )
