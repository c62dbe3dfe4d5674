"""SQLAlchemy database models for the crowdfunding platform."""
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

USER_ROLES = ("user", "admin")

TRANSACTION_PENDING = "pending"
TRANSACTION_PAID = "paid"
TRANSACTION_CANCELLED = "cancelled"
TRANSACTION_STATUSES = (TRANSACTION_PENDING, TRANSACTION_PAID, TRANSACTION_CANCELLED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class User(TimestampMixin, Base):
    """
    Registered platform user.

    Users are never hard-deleted. The password hash never leaves the service
    layer; response schemas omit it.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    occupation: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar_file_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")

    campaigns: Mapped[List["Campaign"]] = relationship(back_populates="user")

    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="valid_user_role"),
    )

    def __repr__(self) -> str:
        """String representation of User."""
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class Campaign(TimestampMixin, Base):
    """
    Fundraising campaign owned by a user.

    backer_count and current_amount only ever grow, and only through the
    payment completion path.
    """

    __tablename__ = "campaigns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    short_description: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    perks: Mapped[str] = mapped_column(Text, nullable=False, default="")
    backer_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    goal_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    user: Mapped["User"] = relationship(back_populates="campaigns")
    campaign_images: Mapped[List["CampaignImage"]] = relationship(
        back_populates="campaign",
        cascade="all, delete-orphan",
        order_by="CampaignImage.id",
    )

    __table_args__ = (
        CheckConstraint("backer_count >= 0", name="non_negative_backer_count"),
        CheckConstraint("current_amount >= 0", name="non_negative_current_amount"),
        CheckConstraint("goal_amount >= 0", name="non_negative_goal_amount"),
    )

    def __repr__(self) -> str:
        """String representation of Campaign."""
        return (
            f"<Campaign(id={self.id}, user_id={self.user_id}, slug={self.slug}, "
            f"current_amount={self.current_amount})>"
        )


class CampaignImage(TimestampMixin, Base):
    """Image attached to a campaign; at most one per campaign is primary."""

    __tablename__ = "campaign_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    campaign: Mapped["Campaign"] = relationship(back_populates="campaign_images")

    __table_args__ = (
        Index("idx_campaign_images_campaign_primary", "campaign_id", "is_primary"),
    )

    def __repr__(self) -> str:
        """String representation of CampaignImage."""
        return (
            f"<CampaignImage(id={self.id}, campaign_id={self.campaign_id}, "
            f"is_primary={self.is_primary})>"
        )


class Transaction(TimestampMixin, Base):
    """
    A pledge against a campaign.

    Status moves pending -> paid | cancelled. The code is the human readable
    identifier (TRX-<unix timestamp>); the gateway order id is the numeric id.
    """

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("campaigns.id"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TRANSACTION_PENDING, index=True
    )
    code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    payment_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="positive_amount"),
        CheckConstraint(
            "status IN ('pending', 'paid', 'cancelled')",
            name="valid_transaction_status",
        ),
    )

    def __repr__(self) -> str:
        """String representation of Transaction."""
        return (
            f"<Transaction(id={self.id}, code={self.code}, "
            f"amount={self.amount}, status={self.status})>"
        )
