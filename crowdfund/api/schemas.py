"""
Pydantic schemas for API request/response models.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from crowdfund.core.formatting import format_idr
from crowdfund.database.models import Campaign, Transaction


# Auth / users


class LoginRequest(BaseModel):
    """Request schema for logging in."""

    email: EmailStr = Field(..., description="Registered email")
    password: str = Field(..., min_length=1, description="Account password")

    model_config = {
        "json_schema_extra": {
            "examples": [{"email": "budi@example.com", "password": "rahasia123"}]
        }
    }


class LoginResponse(BaseModel):
    token: str = Field(..., description="Bearer access token")


class RegisterUserRequest(BaseModel):
    """Request schema for registering a user."""

    name: str = Field(..., min_length=1, max_length=255, description="Full name")
    occupation: str = Field(default="", max_length=255, description="Occupation")
    email: EmailStr = Field(..., description="Email address (unique)")
    password: str = Field(..., min_length=6, description="Plain text password")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Budi Santoso",
                    "occupation": "Engineer",
                    "email": "budi@example.com",
                    "password": "rahasia123",
                }
            ]
        }
    }


class CheckEmailRequest(BaseModel):
    email: EmailStr = Field(..., description="Email address to check")


class EmailAvailabilityResponse(BaseModel):
    is_available: bool


class UpdateUserRequest(BaseModel):
    """Request schema for updating a profile. Omitted fields are left unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    occupation: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = Field(default=None)


class UserResponse(BaseModel):
    """Public view of a user. The password hash is never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    occupation: str
    email: str
    avatar_file_name: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CampaignOwnerResponse(UserResponse):
    """User embedded in a campaign; timestamps are always null."""

    @classmethod
    def from_user(cls, user: Any) -> "CampaignOwnerResponse":
        owner = cls.model_validate(user)
        return owner.model_copy(update={"created_at": None, "updated_at": None})


# Campaigns


class CreateCampaignRequest(BaseModel):
    """Request schema for creating a campaign."""

    name: str = Field(..., min_length=1, max_length=255, description="Campaign name")
    short_description: str = Field(default="", max_length=255)
    description: str = Field(default="")
    perks: str = Field(default="", description="Comma separated list of perks")
    goal_amount: int = Field(default=0, ge=0, description="Funding goal in Rupiah")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Clean Water for Everyone",
                    "short_description": "Wells for three villages",
                    "description": "We are building wells in rural Java.",
                    "perks": "sticker, t-shirt",
                    "goal_amount": 50000000,
                }
            ]
        }
    }


class UpdateCampaignRequest(BaseModel):
    """Request schema for updating a campaign. Omitted fields are left unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    short_description: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    perks: Optional[str] = None
    goal_amount: Optional[int] = Field(default=None, ge=0)


class CampaignImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    campaign_id: int
    file_name: str
    is_primary: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CampaignResponse(BaseModel):
    """Campaign with its images, owner and IDR-formatted amounts."""

    id: int
    user_id: int
    name: str
    short_description: str
    description: str
    perks: str
    backer_count: int
    goal_amount: int
    goal_amount_idr: str
    current_amount: int
    current_amount_idr: str
    slug: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    campaign_images: List[CampaignImageResponse] = Field(default_factory=list)
    user: Optional[CampaignOwnerResponse] = None

    @classmethod
    def from_campaign(cls, campaign: Campaign) -> "CampaignResponse":
        return cls(
            id=campaign.id,
            user_id=campaign.user_id,
            name=campaign.name,
            short_description=campaign.short_description,
            description=campaign.description,
            perks=campaign.perks,
            backer_count=campaign.backer_count,
            goal_amount=campaign.goal_amount,
            goal_amount_idr=format_idr(campaign.goal_amount),
            current_amount=campaign.current_amount,
            current_amount_idr=format_idr(campaign.current_amount),
            slug=campaign.slug,
            created_at=campaign.created_at,
            updated_at=campaign.updated_at,
            campaign_images=[
                CampaignImageResponse.model_validate(image)
                for image in campaign.campaign_images
            ],
            user=(
                CampaignOwnerResponse.from_user(campaign.user)
                if campaign.user is not None
                else None
            ),
        )


# Transactions


class CreateTransactionRequest(BaseModel):
    """Request schema for backing a campaign."""

    campaign_id: int = Field(..., gt=0, description="Campaign to back")
    amount: int = Field(..., gt=0, description="Amount in Rupiah")

    model_config = {
        "json_schema_extra": {"examples": [{"campaign_id": 1, "amount": 150000}]}
    }


class UpdateTransactionRequest(BaseModel):
    status: Literal["pending", "paid", "cancelled"] = Field(
        ..., description="New transaction status"
    )


class PaymentNotificationRequest(BaseModel):
    """
    Midtrans HTTP notification body.

    Midtrans sends many more fields; only the ones the workflow reads are
    declared and the rest are ignored.
    """

    order_id: str = Field(..., min_length=1)
    transaction_status: str = Field(..., min_length=1)
    payment_type: Optional[str] = None
    fraud_status: Optional[str] = None

    @field_validator("order_id", mode="before")
    @classmethod
    def coerce_order_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v


class TransactionResponse(BaseModel):
    id: int
    campaign_id: int
    user_id: int
    amount: int
    amount_idr: str
    status: str
    code: str
    payment_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionResponse":
        return cls(
            id=transaction.id,
            campaign_id=transaction.campaign_id,
            user_id=transaction.user_id,
            amount=transaction.amount,
            amount_idr=format_idr(transaction.amount),
            status=transaction.status,
            code=transaction.code,
            payment_url=transaction.payment_url,
            created_at=transaction.created_at,
            updated_at=transaction.updated_at,
        )


class NotificationResponse(BaseModel):
    result: str = Field(..., description="processed or ignored")
    transaction: Optional[TransactionResponse] = None


# Monitoring


class HealthCheckResponse(BaseModel):
    """Response schema for health check."""

    status: str = Field(..., description="Overall health status")
    checks: Optional[Dict[str, Any]] = Field(default=None, description="Individual checks")
    message: Optional[str] = Field(default=None, description="Status message")
