"""
Access token issuing and validation.

Claims:
- iss: configured issuer
- iat/exp: issued/expiry
- role: "user" or "admin"
- userId: user id as a string
"""
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

import jwt
import structlog

from crowdfund.config import Settings, get_settings
from crowdfund.database.models import User

logger = structlog.get_logger(__name__)

JWT_ALGORITHM = "HS256"


class TokenError(Exception):
    """Raised when a token cannot be parsed or verified."""

    pass


class JWTService:
    """Issues and validates HS256 bearer tokens."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def create_token(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        expiry = now + timedelta(minutes=self.settings.jwt_expiry_minutes)

        payload = {
            "iss": self.settings.jwt_issuer,
            "iat": int(now.timestamp()),
            "exp": int(expiry.timestamp()),
            "role": user.role,
            "userId": str(user.id),
        }
        return jwt.encode(payload, self.settings.jwt_signing_key, algorithm=JWT_ALGORITHM)

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Verify signature, issuer and expiry and return the claims.

        Raises:
            TokenError: If the token is invalid or expired
        """
        try:
            return jwt.decode(
                token,
                self.settings.jwt_signing_key,
                algorithms=[JWT_ALGORITHM],
                issuer=self.settings.jwt_issuer,
                options={"require": ["exp", "iat", "iss"]},
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("token_expired")
            raise TokenError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            logger.info("token_invalid", error=str(e))
            raise TokenError(f"Invalid token: {str(e)}") from e


@lru_cache()
def get_jwt_service() -> JWTService:
    return JWTService()
