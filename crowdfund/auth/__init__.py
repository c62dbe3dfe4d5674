"""Authentication: password hashing, bearer tokens and route policies."""
from .jwt_service import JWTService, TokenError, get_jwt_service
from .passwords import hash_password, verify_password
from .policy import (
    ADMIN_ONLY,
    USER_ONLY,
    USER_OR_ADMIN,
    Policy,
    Principal,
    Role,
    TokenRejected,
)

__all__ = [
    "JWTService",
    "TokenError",
    "get_jwt_service",
    "hash_password",
    "verify_password",
    "Policy",
    "Principal",
    "Role",
    "TokenRejected",
    "USER_ONLY",
    "USER_OR_ADMIN",
    "ADMIN_ONLY",
]
