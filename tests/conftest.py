"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt

from app.clients import InMemoryBackend
from app.config import settings
from app.services import JWTService
from app.services.request_validator import hash_api_key
from main import app, configure_services

ADMIN_USER_ID = "user-admin-001"
TECH_USER_ID = "user-tech-002"
CLIENT_USER_ID = "user-client-003"


def seed_tables():
    """Rows for a small tenant with registered endpoints, users and API keys."""
    now = datetime.now(timezone.utc)
    return {
        "api_endpoints": [
            {
                "id": "ep-tickets-create",
                "tenant_id": "tenant-456",
                "path": "/v1/tickets",
                "method": "POST",
                "auth_required": True,
                "rate_limit_per_minute": 5,
                "validation_enabled": True,
                "request_schema": {
                    "required": ["title"],
                    "properties": {
                        "title": {"type": "string", "minLength": 3, "maxLength": 80},
                        "priority": {"type": "string"},
                        "hours": {"type": "number"},
                    },
                },
            },
            {
                "id": "ep-clients-list",
                "tenant_id": "tenant-456",
                "path": "/v1/clients",
                "method": "GET",
                "auth_required": True,
                "allowed_roles": ["admin", "technician"],
                "rate_limit_per_minute": 120,
            },
            {
                "id": "ep-legacy-report",
                "tenant_id": "tenant-456",
                "path": "/v1/reports/legacy",
                "method": "GET",
                "deprecated": True,
                "replacement_endpoint": "/v2/reports",
                "deprecation_date": "2024-06-30",
            },
            {
                "id": "ep-status",
                "tenant_id": "tenant-456",
                "path": "/v1/status",
                "method": "GET",
                "rate_limit_per_minute": 0,
            },
            {
                "id": "ep-partner-feed",
                "tenant_id": "tenant-456",
                "path": "/v1/partner/feed",
                "method": "GET",
                "api_key_required": True,
            },
            {
                "id": "ep-retired",
                "tenant_id": "tenant-456",
                "path": "/v1/retired",
                "method": "GET",
                "is_active": False,
            },
        ],
        "users": [
            {"auth_user_id": ADMIN_USER_ID, "role": "admin"},
            {"auth_user_id": TECH_USER_ID, "role": "technician"},
            {"auth_user_id": CLIENT_USER_ID, "role": "client"},
        ],
        "api_access_tokens": [
            {
                "id": "key-valid",
                "tenant_id": "tenant-456",
                "token_hash": hash_api_key("partner-key-valid"),
                "is_active": True,
                "expires_at": (now + timedelta(days=30)).isoformat(),
            },
            {
                "id": "key-expired",
                "tenant_id": "tenant-456",
                "token_hash": hash_api_key("partner-key-expired"),
                "is_active": True,
                "expires_at": (now - timedelta(days=1)).isoformat(),
            },
            {
                "id": "key-revoked",
                "tenant_id": "tenant-456",
                "token_hash": hash_api_key("partner-key-revoked"),
                "is_active": False,
            },
        ],
        "pricing_rules": [
            {
                "id": "rule-standard",
                "name": "Standard managed services",
                "discount_rules": {"percentage": 10},
                "tax_rules": {"rate": 8},
            },
        ],
    }


def make_token(user_id: str, expires_in: timedelta = timedelta(hours=1)) -> str:
    payload = {
        "sub": user_id,
        "role": "authenticated",
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def backend():
    """In-memory backend seeded with the test tenant."""
    return InMemoryBackend(jwt_service=JWTService(), tables=seed_tables())


@pytest_asyncio.fixture
async def client(backend):
    """Create test client with services wired into app state."""
    test_settings = settings.model_copy(update={"REQUEST_LOG_BACKGROUND": False})
    configure_services(app.state, test_settings, backend=backend)

    # Use ASGITransport to drive the app in-process
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token(ADMIN_USER_ID)}"}


@pytest.fixture
def tech_headers():
    return {"Authorization": f"Bearer {make_token(TECH_USER_ID)}"}


@pytest.fixture
def auth_headers():
    """Create authorization headers for a plain client user."""
    return {"Authorization": f"Bearer {make_token(CLIENT_USER_ID)}"}
