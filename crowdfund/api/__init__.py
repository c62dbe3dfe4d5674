"""FastAPI application and routes."""
from .main import app
from .schemas import (
    CampaignResponse,
    CreateCampaignRequest,
    CreateTransactionRequest,
    RegisterUserRequest,
    TransactionResponse,
    UserResponse,
)

__all__ = [
    "app",
    "CampaignResponse",
    "CreateCampaignRequest",
    "CreateTransactionRequest",
    "RegisterUserRequest",
    "TransactionResponse",
    "UserResponse",
]
