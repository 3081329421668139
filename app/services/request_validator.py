"""Authentication, role and API key checks for gateway requests."""

import hashlib
import logging
from typing import Optional

from app.clients.base import Backend
from app.models.endpoint import EndpointDescriptor
from app.models.request import ApiKey, AuthResult, GatewayRequest

logger = logging.getLogger(__name__)

USERS_TABLE = "users"
API_KEYS_TABLE = "api_access_tokens"


def hash_api_key(api_key: str) -> str:
    """Return the stored digest form of an API key."""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


class RequestValidator:
    """Validates a request against an endpoint's access policy.

    Checks run in a fixed order and stop at the first failure: bearer token,
    role, API key presence, API key validity.
    """

    def __init__(self, backend: Backend):
        self.backend = backend

    async def validate(
        self, request: GatewayRequest, endpoint: EndpointDescriptor
    ) -> AuthResult:
        """Validate request credentials for ``endpoint``.

        Args:
            request: Inbound gateway request
            endpoint: Resolved endpoint descriptor

        Returns:
            AuthResult carrying the resolved user id, also on failures that
            happen after the user was identified
        """
        user_id: Optional[str] = None

        if endpoint.auth_required:
            token = request.bearer_token()
            if not token:
                return AuthResult(
                    valid=False, error="Missing or invalid authorization header"
                )

            user_id = await self.backend.get_user_id(token)
            if not user_id:
                return AuthResult(valid=False, error="Invalid authentication token")

        if endpoint.allowed_roles:
            role = await self._get_role(user_id)
            if role is None or role not in endpoint.allowed_roles:
                logger.info(
                    f"Role check failed: user_id={user_id} role={role} "
                    f"endpoint={endpoint.method} {endpoint.path}"
                )
                return AuthResult(
                    valid=False, error="Insufficient permissions", user_id=user_id
                )

        api_key_header = request.header("x-api-key")

        if endpoint.api_key_required and not api_key_header:
            return AuthResult(valid=False, error="API key required", user_id=user_id)

        if api_key_header:
            error = await self._check_api_key(api_key_header)
            if error:
                return AuthResult(valid=False, error=error, user_id=user_id)

        return AuthResult(valid=True, user_id=user_id)

    async def _get_role(self, user_id: Optional[str]) -> Optional[str]:
        if not user_id:
            return None
        profile = await self.backend.select_one(USERS_TABLE, {"auth_user_id": user_id})
        return profile.get("role") if profile else None

    async def _check_api_key(self, api_key: str) -> Optional[str]:
        row = await self.backend.select_one(
            API_KEYS_TABLE, {"token_hash": hash_api_key(api_key)}
        )
        key = ApiKey.model_validate(row) if row else None
        if key is None or not key.is_active:
            return "Invalid API key"

        if key.is_expired():
            return "API key expired"

        return None
