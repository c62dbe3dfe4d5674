"""Repository layer: the only code that writes persisted state."""
from .campaigns import CampaignRepository
from .transactions import TransactionRepository
from .users import UserRepository

__all__ = ["CampaignRepository", "TransactionRepository", "UserRepository"]
