"""Security primitives shared by the identity and voting layers.

Sessions are opaque server-side tokens rather than JWTs, so this module only
deals with randomness, one-way hashing and constant-time comparison.
"""

import base64
import hashlib
import hmac
import re
import secrets

# 32 random bytes -> 43 base64url characters (256 bits of entropy)
SESSION_TOKEN_BYTES = 32
SESSION_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{43}$")


def generate_secure_token(length: int = SESSION_TOKEN_BYTES) -> str:
    """Generate a cryptographically secure random token.

    Backed by the OS CSPRNG via ``secrets``. If the OS cannot supply
    randomness the underlying error propagates; there is no weaker fallback.
    """
    return secrets.token_urlsafe(length)


def is_well_formed_token(token: str | None) -> bool:
    """Check that a client-supplied session id has the shape we issue."""
    return bool(token) and SESSION_TOKEN_PATTERN.match(token) is not None


def sha256_base64url(value: str) -> str:
    """SHA-256 digest of ``value`` encoded as unpadded base64url."""
    digest = hashlib.sha256(value.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def constant_time_equals(provided: str | None, expected: str | None) -> bool:
    """
    Compare two secrets without leaking timing information.

    Both values must be present and non-empty; an unset secret never matches.
    """
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())
