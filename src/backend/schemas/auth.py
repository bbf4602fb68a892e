"""
Authentication-related Pydantic schemas.

The provider payloads are validated explicitly: a profile missing any
required field is rejected instead of being trusted by shape.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ProviderTokens(BaseModel):
    """Token endpoint response (only the fields we use)."""

    access_token: str = Field(..., min_length=1)
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None


class ProviderProfile(BaseModel):
    """Profile returned by the identity provider's ``users/me`` endpoint."""

    id: str = Field(..., min_length=1, max_length=64)
    username: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    profile_image_url: str = Field(..., min_length=1, max_length=500)


class AccountPublic(BaseModel):
    """Public fields of an account, safe to hand to the browser."""

    id: str
    username: str
    name: str
    avatar: Optional[str] = None


class MeResponse(BaseModel):
    """Current identity; ``user`` is None for anonymous visitors."""

    user: Optional[AccountPublic] = None


class LogoutResponse(BaseModel):
    """Logout always reports success."""

    success: bool = True
