"""Tests for discovery endpoint."""

import pytest


@pytest.mark.asyncio
async def test_discovery_endpoint(client):
    """Test endpoint discovery."""
    response = await client.get("/api/v1/discovery")
    assert response.status_code == 200

    data = response.json()
    assert data["service"] == "msp-core-gateway"
    assert isinstance(data["endpoints"], list)
    assert data["rate_limits"]["default_per_minute"] > 0


@pytest.mark.asyncio
async def test_discovery_lists_active_endpoints_only(client):
    response = await client.get("/api/v1/discovery")
    paths = [endpoint["path"] for endpoint in response.json()["endpoints"]]

    assert "/v1/tickets" in paths
    assert "/v1/retired" not in paths
    assert paths == sorted(paths)


@pytest.mark.asyncio
async def test_discovery_returns_access_requirements(client):
    response = await client.get("/api/v1/discovery")
    endpoints = {endpoint["path"]: endpoint for endpoint in response.json()["endpoints"]}

    tickets = endpoints["/v1/tickets"]
    assert tickets["method"] == "POST"
    assert tickets["auth_required"] is True
    assert tickets["rate_limit_per_minute"] == 5

    legacy = endpoints["/v1/reports/legacy"]
    assert legacy["deprecated"] is True
    assert legacy["replacement_endpoint"] == "/v2/reports"

    assert endpoints["/v1/partner/feed"]["api_key_required"] is True
