"""JWT validation service."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from app.config import settings

logger = logging.getLogger(__name__)


class JWTService:
    """Service for access token validation and claims extraction."""

    def __init__(
        self,
        secret_key: str = None,
        algorithm: str = None,
        audience: Optional[str] = None,
    ):
        """Initialize JWT service.

        Args:
            secret_key: Project JWT secret
            algorithm: JWT algorithm (default: HS256)
            audience: Expected ``aud`` claim; audience is not checked when unset
        """
        self.secret_key = secret_key or settings.JWT_SECRET_KEY
        self.algorithm = algorithm or settings.JWT_ALGORITHM
        self.audience = audience or settings.JWT_AUDIENCE

    def validate_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Validate JWT token and extract claims.

        Args:
            token: JWT token string

        Returns:
            Dict of claims if valid, None otherwise
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={"verify_aud": self.audience is not None},
            )

            exp = payload.get("exp")
            if exp:
                exp_datetime = datetime.fromtimestamp(exp, tz=timezone.utc)
                if datetime.now(timezone.utc) > exp_datetime:
                    logger.warning("Token has expired")
                    return None

            if not self.get_user_id(payload):
                logger.warning("Token missing sub claim")
                return None

            return payload

        except JWTError as e:
            logger.warning(f"JWT validation failed: {e}")
            return None

    def get_user_id(self, payload: Dict[str, Any]) -> Optional[str]:
        """Extract the user id (``sub``) from token payload.

        Args:
            payload: Token payload

        Returns:
            User ID or None
        """
        return payload.get("sub") or payload.get("user_id")
