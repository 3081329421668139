"""Tests for gateway credential and role checks."""

from datetime import timedelta

import pytest

from app.models.endpoint import EndpointDescriptor
from app.models.request import GatewayRequest
from app.services.request_validator import RequestValidator, hash_api_key
from tests.conftest import ADMIN_USER_ID, CLIENT_USER_ID, TECH_USER_ID, make_token


@pytest.fixture
def validator(backend):
    return RequestValidator(backend)


def endpoint(**overrides):
    fields = {"id": "ep-test", "path": "/v1/test", "method": "GET"}
    fields.update(overrides)
    return EndpointDescriptor(**fields)


def request_with(headers=None):
    return GatewayRequest(method="GET", path="/v1/test", headers=headers or {})


def bearer(user_id):
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def test_hash_api_key_is_sha256_hex():
    digest = hash_api_key("partner-key-valid")

    assert len(digest) == 64
    assert digest == hash_api_key("partner-key-valid")
    assert digest != hash_api_key("partner-key-other")


@pytest.mark.asyncio
async def test_open_endpoint_needs_no_credentials(validator):
    result = await validator.validate(request_with(), endpoint())

    assert result.valid is True
    assert result.user_id is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Basic dXNlcjpwYXNz"},
        {"Authorization": "bearer abc.def.ghi"},
        {"Authorization": "Bearer"},
    ],
)
async def test_missing_or_malformed_authorization(validator, headers):
    result = await validator.validate(request_with(headers), endpoint(auth_required=True))

    assert result.valid is False
    assert result.error == "Missing or invalid authorization header"


@pytest.mark.asyncio
async def test_invalid_token(validator):
    result = await validator.validate(
        request_with({"Authorization": "Bearer not-a-jwt"}), endpoint(auth_required=True)
    )

    assert result.valid is False
    assert result.error == "Invalid authentication token"


@pytest.mark.asyncio
async def test_expired_token(validator):
    token = make_token(TECH_USER_ID, expires_in=timedelta(minutes=-5))

    result = await validator.validate(
        request_with({"Authorization": f"Bearer {token}"}), endpoint(auth_required=True)
    )

    assert result.error == "Invalid authentication token"


@pytest.mark.asyncio
async def test_valid_token_resolves_user(validator):
    result = await validator.validate(
        request_with(bearer(TECH_USER_ID)), endpoint(auth_required=True)
    )

    assert result.valid is True
    assert result.user_id == TECH_USER_ID


@pytest.mark.asyncio
async def test_role_allowed(validator):
    result = await validator.validate(
        request_with(bearer(ADMIN_USER_ID)),
        endpoint(auth_required=True, allowed_roles=["admin", "technician"]),
    )

    assert result.valid is True


@pytest.mark.asyncio
async def test_role_denied_keeps_user_id(validator):
    result = await validator.validate(
        request_with(bearer(CLIENT_USER_ID)),
        endpoint(auth_required=True, allowed_roles=["admin", "technician"]),
    )

    assert result.valid is False
    assert result.error == "Insufficient permissions"
    assert result.user_id == CLIENT_USER_ID


@pytest.mark.asyncio
async def test_roles_without_authentication_are_denied(validator):
    result = await validator.validate(request_with(), endpoint(allowed_roles=["admin"]))

    assert result.error == "Insufficient permissions"


@pytest.mark.asyncio
async def test_api_key_required(validator):
    result = await validator.validate(request_with(), endpoint(api_key_required=True))

    assert result.error == "API key required"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "api_key, error",
    [
        ("partner-key-unknown", "Invalid API key"),
        ("partner-key-revoked", "Invalid API key"),
        ("partner-key-expired", "API key expired"),
    ],
)
async def test_rejected_api_keys(validator, api_key, error):
    result = await validator.validate(
        request_with({"X-API-Key": api_key}), endpoint(api_key_required=True)
    )

    assert result.valid is False
    assert result.error == error


@pytest.mark.asyncio
async def test_valid_api_key(validator):
    result = await validator.validate(
        request_with({"X-API-Key": "partner-key-valid"}), endpoint(api_key_required=True)
    )

    assert result.valid is True


@pytest.mark.asyncio
async def test_supplied_api_key_is_checked_even_when_optional(validator):
    result = await validator.validate(
        request_with({"X-API-Key": "partner-key-unknown"}), endpoint()
    )

    assert result.error == "Invalid API key"


@pytest.mark.asyncio
async def test_checks_stop_at_first_failure(validator):
    result = await validator.validate(
        request_with({"X-API-Key": "partner-key-unknown"}),
        endpoint(auth_required=True, api_key_required=True),
    )

    assert result.error == "Missing or invalid authorization header"
