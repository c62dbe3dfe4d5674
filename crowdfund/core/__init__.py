"""
Service layer: business rules between the API and the repositories.

Services live in their own modules (core.users, core.campaigns,
core.transactions, core.auth); the package exports the shared errors and
paging helpers.
"""
from .errors import (
    AuthenticationError,
    ConflictError,
    CrowdfundError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .pagination import Paging, validate_page

__all__ = [
    "CrowdfundError",
    "ValidationError",
    "AuthenticationError",
    "PermissionDeniedError",
    "NotFoundError",
    "ConflictError",
    "Paging",
    "validate_page",
]
