"""
OAuth 2.0 identity provider client.

Wraps the two outbound calls of the login callback: exchanging the
authorization code (plus PKCE verifier) for tokens, and fetching the
user's profile. Both calls share one httpx client with a bounded timeout;
neither is retried, since authorization codes are single-use.
"""

from typing import Any, Optional

import httpx
import structlog

from core.config import Settings, settings
from schemas.auth import ProviderProfile, ProviderTokens

logger = structlog.get_logger(__name__)


class OAuthProviderClient:
    """
    HTTP client for the configured identity provider.

    Errors are not translated here: non-2xx responses raise
    ``httpx.HTTPStatusError``, transport problems raise ``httpx.HTTPError``
    subclasses, and malformed payloads raise ``pydantic.ValidationError``.
    """

    def __init__(self, config: Settings = settings, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.OAUTH_HTTP_TIMEOUT_SECONDS),
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def exchange_code(self, code: str, code_verifier: str) -> ProviderTokens:
        """Trade an authorization code for tokens at the provider's token endpoint."""
        response = await self.client.post(
            self.config.OAUTH_TOKEN_URL,
            auth=(self.config.OAUTH_CLIENT_ID, self.config.OAUTH_CLIENT_SECRET),
            data={
                "code": code,
                "grant_type": "authorization_code",
                "client_id": self.config.OAUTH_CLIENT_ID,
                "redirect_uri": self.config.OAUTH_REDIRECT_URI,
                "code_verifier": code_verifier,
            },
            headers={"Accept": "application/json"},
        )
        if response.is_error:
            # Body may contain provider diagnostics; keep it in the logs only
            logger.warning(
                "provider_token_exchange_rejected",
                status_code=response.status_code,
                body=response.text[:300],
            )
        response.raise_for_status()
        return ProviderTokens.model_validate(response.json())

    async def fetch_profile(self, access_token: str) -> ProviderProfile:
        """Fetch the authenticated user's profile."""
        response = await self.client.get(
            self.config.OAUTH_PROFILE_URL,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
        )
        if response.is_error:
            logger.warning(
                "provider_profile_rejected",
                status_code=response.status_code,
                body=response.text[:300],
            )
        response.raise_for_status()

        payload: Any = response.json()
        # Twitter/X wraps the user object in {"data": {...}}
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        return ProviderProfile.model_validate(payload)


_provider_client: Optional[OAuthProviderClient] = None


def get_oauth_provider() -> OAuthProviderClient:
    """Get the process-wide provider client."""
    global _provider_client
    if _provider_client is None:
        _provider_client = OAuthProviderClient()
    return _provider_client


async def close_oauth_provider() -> None:
    """Release the provider client's connections."""
    global _provider_client
    if _provider_client is not None:
        await _provider_client.close()
        _provider_client = None
