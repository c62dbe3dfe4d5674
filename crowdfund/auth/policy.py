"""
Per-route access policies.

Every protected route declares a Policy listing the roles it accepts. The
policy is a FastAPI dependency: it reads the bearer token, verifies it and
resolves the caller into a Principal. Any failure is rejected with a bare 401.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog
from fastapi import Depends, Header

from crowdfund.auth.jwt_service import JWTService, TokenError, get_jwt_service

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "Bearer "


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class TokenRejected(Exception):
    """Raised by a policy when the request is not authorized. Rendered as 401 with no body."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class Principal:
    """Authenticated caller resolved from verified token claims."""

    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    def can_act_for(self, user_id: int) -> bool:
        """True when the caller is the given user or an admin."""
        return self.is_admin or self.user_id == user_id


class Policy:
    """
    Route dependency that accepts only the given roles.

    Usage:
        @router.get("/users")
        async def list_users(principal: Principal = Depends(USER_ONLY)):
            ...
    """

    def __init__(self, *roles: Role):
        self.roles = frozenset(role.value for role in roles)

    async def __call__(
        self,
        authorization: Optional[str] = Header(default=None),
        jwt_service: JWTService = Depends(get_jwt_service),
    ) -> Principal:
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise TokenRejected("missing bearer token")

        token = authorization[len(BEARER_PREFIX):].strip()
        try:
            claims = jwt_service.validate_token(token)
        except TokenError as e:
            raise TokenRejected(str(e)) from e

        try:
            user_id = int(claims.get("userId", ""))
        except (TypeError, ValueError) as e:
            raise TokenRejected("userId claim is not an integer") from e

        role = claims.get("role")
        if role not in self.roles:
            logger.info("policy_role_rejected", user_id=user_id, role=role)
            raise TokenRejected(f"role {role!r} not permitted")

        structlog.contextvars.bind_contextvars(user_id=user_id)
        return Principal(user_id=user_id, role=role)


USER_ONLY = Policy(Role.USER)
USER_OR_ADMIN = Policy(Role.USER, Role.ADMIN)
ADMIN_ONLY = Policy(Role.ADMIN)
