"""
PKCE login handshake generation.

Produces the (state, code_verifier, code_challenge) triple for an OAuth 2.0
authorization-code login and the provider URL to redirect the browser to.
The caller must persist ``state`` and ``code_verifier`` (httpOnly cookies,
plus the server-side handshake row) before redirecting.
"""

import secrets
from dataclasses import dataclass
from urllib.parse import urlencode

from core.config import Settings, settings
from core.security import sha256_base64url

CODE_CHALLENGE_METHOD = "S256"
VERIFIER_BYTES = 32  # 43 base64url characters
STATE_BYTES = 16


@dataclass(frozen=True)
class LoginHandshake:
    """Everything produced when a login starts."""

    authorization_url: str
    state: str
    code_verifier: str
    code_challenge: str


@dataclass(frozen=True)
class PendingHandshake:
    """The handshake half the browser hands back on the callback."""

    state: str | None
    code_verifier: str | None

    @property
    def is_paired(self) -> bool:
        """Both halves are present; the callback cannot proceed otherwise."""
        return bool(self.state) and bool(self.code_verifier)


def generate_code_verifier() -> str:
    """High-entropy verifier; only ever stored in the browser."""
    return secrets.token_urlsafe(VERIFIER_BYTES)


def generate_code_challenge(verifier: str) -> str:
    """S256 challenge: base64url(sha256(verifier)) without padding."""
    return sha256_base64url(verifier)


def generate_state() -> str:
    """Correlation token, independent of the verifier."""
    return secrets.token_hex(STATE_BYTES)


def build_authorization_url(state: str, code_challenge: str, config: Settings = settings) -> str:
    """Provider authorization URL carrying the challenge and state."""
    params = {
        "response_type": "code",
        "client_id": config.OAUTH_CLIENT_ID,
        "redirect_uri": config.OAUTH_REDIRECT_URI,
        "scope": config.OAUTH_SCOPES,
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": CODE_CHALLENGE_METHOD,
    }
    return f"{config.OAUTH_AUTHORIZE_URL}?{urlencode(params)}"


def begin_login(config: Settings = settings) -> LoginHandshake:
    """Generate a fresh handshake. Randomness failures propagate."""
    code_verifier = generate_code_verifier()
    code_challenge = generate_code_challenge(code_verifier)
    state = generate_state()
    return LoginHandshake(
        authorization_url=build_authorization_url(state, code_challenge, config),
        state=state,
        code_verifier=code_verifier,
        code_challenge=code_challenge,
    )
