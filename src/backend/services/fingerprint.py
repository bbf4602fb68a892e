"""
Anonymous voter fingerprinting.

The fingerprint is a rate-limiting key, not proof of identity: it is a
deterministic, non-reversible digest of the client address and user agent.
Missing values collapse to a fixed sentinel so fingerprinting never fails.
"""

import hashlib

from fastapi import Request

UNKNOWN = "unknown"
FINGERPRINT_LENGTH = 32


def fingerprint(client_address: str | None, user_agent: str | None) -> str:
    """Derive the stable anonymous identifier for a visitor."""
    address = (client_address or "").strip() or UNKNOWN
    agent = (user_agent or "").strip() or UNKNOWN
    digest = hashlib.sha256(f"{address}:{agent}".encode("utf-8")).hexdigest()
    return digest[:FINGERPRINT_LENGTH]


def get_client_ip(request: Request) -> str:
    """Get client IP, honouring the usual proxy headers."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # First IP in the chain is the client
        ip = forwarded.split(",")[0].strip()
        if ip:
            return ip

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else UNKNOWN


def fingerprint_request(request: Request) -> str:
    """Fingerprint the visitor behind an incoming request."""
    return fingerprint(get_client_ip(request), request.headers.get("User-Agent"))
