"""Tests for health check endpoints."""

import pytest

from main import app


@pytest.mark.asyncio
async def test_health_endpoint(client):
    """Test basic health check endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data
    assert data["uptime_seconds"] >= 0


@pytest.mark.asyncio
async def test_healthz_endpoint(client):
    """Test Kubernetes liveness probe endpoint."""
    response = await client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "OK"


@pytest.mark.asyncio
async def test_ready_endpoint(client):
    """Test readiness probe against the in-memory backend."""
    response = await client.get("/ready")
    assert response.status_code == 200

    data = response.json()
    assert data["ready"] is True
    assert data["backend"] == "memory"
    assert data["checks"] == {"backend": True}


@pytest.mark.asyncio
async def test_ready_reports_unhealthy_backend(client, backend, monkeypatch):
    async def unhealthy():
        return False

    monkeypatch.setattr(backend, "health_check", unhealthy)

    response = await client.get("/ready")
    assert response.status_code == 503
    assert response.json()["ready"] is False


@pytest.mark.asyncio
async def test_root_endpoint(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["service"] == "msp-core-gateway"


@pytest.mark.asyncio
async def test_correlation_id_is_propagated(client):
    response = await client.get("/healthz", headers={"X-Correlation-Id": "corr-123"})
    assert response.headers["X-Correlation-Id"] == "corr-123"


@pytest.mark.asyncio
async def test_cors_headers_on_api_responses(client):
    response = await client.get("/healthz")
    assert response.headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.asyncio
async def test_services_unavailable_before_startup(client, auth_headers, monkeypatch):
    monkeypatch.delattr(app.state, "pricing_engine")

    response = await client.post(
        "/api/v1/pricing/calculate",
        json={"params": {"base_amount": 1, "currency": "USD"}},
        headers=auth_headers,
    )
    assert response.status_code == 503
