"""
Tests for anonymous voter fingerprinting.
"""

from unittest.mock import MagicMock

import pytest

from services.fingerprint import (
    FINGERPRINT_LENGTH,
    UNKNOWN,
    fingerprint,
    fingerprint_request,
    get_client_ip,
)


def _request(headers: dict[str, str] | None = None, host: str | None = "10.0.0.1") -> MagicMock:
    request = MagicMock()
    request.headers = headers or {}
    request.client = MagicMock(host=host) if host else None
    return request


@pytest.mark.unit
class TestFingerprint:
    """Tests for the pure fingerprint function."""

    def test_deterministic(self) -> None:
        assert fingerprint("1.2.3.4", "Mozilla/5.0") == fingerprint("1.2.3.4", "Mozilla/5.0")

    def test_fixed_length_hex(self) -> None:
        value = fingerprint("1.2.3.4", "Mozilla/5.0")
        assert len(value) == FINGERPRINT_LENGTH
        assert all(c in "0123456789abcdef" for c in value)

    def test_distinguishes_address_and_agent(self) -> None:
        base = fingerprint("1.2.3.4", "Mozilla/5.0")
        assert fingerprint("1.2.3.5", "Mozilla/5.0") != base
        assert fingerprint("1.2.3.4", "curl/8.0") != base

    @pytest.mark.parametrize("address,agent", [(None, None), ("", ""), ("   ", None)])
    def test_missing_values_use_sentinel(self, address, agent) -> None:
        """Fingerprinting never fails on missing inputs."""
        assert fingerprint(address, agent) == fingerprint(UNKNOWN, UNKNOWN)


@pytest.mark.unit
class TestClientIp:
    def test_forwarded_for_first_hop_wins(self) -> None:
        request = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.2"})
        assert get_client_ip(request) == "203.0.113.7"

    def test_real_ip_header(self) -> None:
        request = _request({"X-Real-IP": "198.51.100.4"})
        assert get_client_ip(request) == "198.51.100.4"

    def test_falls_back_to_peer_address(self) -> None:
        assert get_client_ip(_request()) == "10.0.0.1"

    def test_no_client_at_all(self) -> None:
        assert get_client_ip(_request(host=None)) == UNKNOWN

    def test_fingerprint_request_uses_user_agent(self) -> None:
        request = _request({"User-Agent": "Mozilla/5.0"})
        assert fingerprint_request(request) == fingerprint("10.0.0.1", "Mozilla/5.0")
