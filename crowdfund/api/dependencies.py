"""
FastAPI dependency providers.

Repositories share the request's AsyncSession (get_db is cached per request),
so every write in a request commits or rolls back together.
"""
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crowdfund.auth.jwt_service import JWTService, get_jwt_service
from crowdfund.core.auth import AuthService
from crowdfund.core.campaigns import CampaignService
from crowdfund.core.transactions import TransactionService
from crowdfund.core.users import UserService
from crowdfund.database.connection import get_db
from crowdfund.integrations.file_storage import LocalFileStorage
from crowdfund.integrations.midtrans_client import MidtransClient
from crowdfund.integrations.notification_handler import NotificationHandler
from crowdfund.repositories import CampaignRepository, TransactionRepository, UserRepository


def get_user_repository(db: AsyncSession = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_campaign_repository(db: AsyncSession = Depends(get_db)) -> CampaignRepository:
    return CampaignRepository(db)


def get_transaction_repository(db: AsyncSession = Depends(get_db)) -> TransactionRepository:
    return TransactionRepository(db)


@lru_cache()
def get_gateway() -> MidtransClient:
    """Process-wide Midtrans client; closed by the application lifespan."""
    return MidtransClient()


@lru_cache()
def get_file_storage() -> LocalFileStorage:
    return LocalFileStorage()


def get_user_service(repo: UserRepository = Depends(get_user_repository)) -> UserService:
    return UserService(repo)


def get_auth_service(
    repo: UserRepository = Depends(get_user_repository),
    jwt_service: JWTService = Depends(get_jwt_service),
) -> AuthService:
    return AuthService(repo, jwt_service)


def get_campaign_service(
    repo: CampaignRepository = Depends(get_campaign_repository),
) -> CampaignService:
    return CampaignService(repo)


def get_transaction_service(
    transaction_repo: TransactionRepository = Depends(get_transaction_repository),
    campaign_repo: CampaignRepository = Depends(get_campaign_repository),
    gateway: MidtransClient = Depends(get_gateway),
) -> TransactionService:
    return TransactionService(transaction_repo, campaign_repo, gateway)


def get_notification_handler(
    gateway: MidtransClient = Depends(get_gateway),
    transaction_service: TransactionService = Depends(get_transaction_service),
) -> NotificationHandler:
    return NotificationHandler(gateway, transaction_service)
