"""Database package for the crowdfunding API."""
from .connection import close_db, get_db, init_db
from .models import (
    Base,
    Campaign,
    CampaignImage,
    Transaction,
    User,
)

__all__ = [
    "Base",
    "User",
    "Campaign",
    "CampaignImage",
    "Transaction",
    "get_db",
    "init_db",
    "close_db",
]
