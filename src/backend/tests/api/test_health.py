"""
Tests for health and utility endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.unit
class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "featureboard-api"}

    async def test_root_endpoint(self, client: AsyncClient) -> None:
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "FeatureBoard"

    async def test_security_headers_present(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "frame-ancestors 'none'" in response.headers["Content-Security-Policy"]

    async def test_no_hsts_outside_https(self, client: AsyncClient) -> None:
        """Tests run with APP_ENV=test, so cookies are not secure and HSTS is off."""
        response = await client.get("/health")
        assert "Strict-Transport-Security" not in response.headers

    async def test_request_id_generated(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert len(response.headers["X-Request-ID"]) == 32

    async def test_request_id_echoed_when_well_formed(self, client: AsyncClient) -> None:
        response = await client.get("/health", headers={"X-Request-ID": "edge-abc.123"})
        assert response.headers["X-Request-ID"] == "edge-abc.123"

    async def test_malformed_request_id_replaced(self, client: AsyncClient) -> None:
        response = await client.get("/health", headers={"X-Request-ID": "bad id\twith spaces"})
        assert response.headers["X-Request-ID"] != "bad id\twith spaces"
        assert len(response.headers["X-Request-ID"]) == 32


@pytest.mark.unit
class TestAPIDocumentation:
    async def test_openapi_schema_follows_debug(self, client: AsyncClient) -> None:
        from core.config import settings

        response = await client.get("/openapi.json")
        if settings.DEBUG:
            assert response.status_code == 200
        else:
            assert response.status_code == 404
