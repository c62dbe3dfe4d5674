"""Domain exceptions shared by the service layer.

Each exception carries the HTTP status the API layer renders it with.
"""
from typing import Optional


class CrowdfundError(Exception):
    """Base exception for crowdfunding domain errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(CrowdfundError):
    """Raised when request input fails validation."""

    status_code = 400


class AuthenticationError(CrowdfundError):
    """Raised when credentials are wrong."""

    status_code = 401


class PermissionDeniedError(CrowdfundError):
    """Raised when the caller may not act on a resource."""

    status_code = 403


class NotFoundError(CrowdfundError):
    """Raised when a requested record does not exist."""

    status_code = 404


class ConflictError(CrowdfundError):
    """Raised when a write would violate a uniqueness rule."""

    status_code = 409
