"""
Campaign use cases.

Ownership: every mutation requires the caller to own the campaign or be an
admin. The counters (backer_count, current_amount) are never written here;
they only move when a payment completes (see core.transactions).
"""
from typing import Any, Dict, List, Optional, Tuple

import structlog

from crowdfund.auth.policy import Principal
from crowdfund.core.errors import ConflictError, NotFoundError, PermissionDeniedError
from crowdfund.core.formatting import make_slug
from crowdfund.core.pagination import Paging, validate_page
from crowdfund.database.models import Campaign, CampaignImage, utcnow
from crowdfund.repositories.campaigns import CampaignRepository

logger = structlog.get_logger(__name__)

UPDATABLE_CAMPAIGN_FIELDS = (
    "name",
    "short_description",
    "description",
    "perks",
    "goal_amount",
)


class CampaignService:
    """Business rules for campaigns and their images."""

    def __init__(self, repo: CampaignRepository):
        self.repo = repo

    async def create_campaign(self, data: Dict[str, Any], owner_id: int) -> Campaign:
        """Create a campaign owned by owner_id. Counters start at zero."""
        now = utcnow()
        campaign = Campaign(
            user_id=owner_id,
            name=data["name"],
            short_description=data.get("short_description") or "",
            description=data.get("description") or "",
            perks=data.get("perks") or "",
            goal_amount=data.get("goal_amount") or 0,
            backer_count=0,
            current_amount=0,
            slug=make_slug(data["name"], owner_id),
            created_at=now,
            updated_at=now,
        )
        return await self.repo.create(campaign)

    async def find_all_campaigns(
        self, page: int, size: int, user_id: Optional[int] = None
    ) -> Tuple[List[Campaign], Paging]:
        validate_page(page, size)
        campaigns, total_rows = await self.repo.find_all(page, size, user_id=user_id)
        return campaigns, Paging.build(page, size, total_rows)

    async def find_campaign_by_id(self, campaign_id: int) -> Campaign:
        campaign = await self.repo.find_by_id(campaign_id)
        if campaign is None:
            raise NotFoundError("Campaign not found")
        return campaign

    async def find_owned_campaign(self, campaign_id: int, principal: Principal) -> Campaign:
        campaign = await self.find_campaign_by_id(campaign_id)
        if not principal.can_act_for(campaign.user_id):
            logger.info(
                "campaign_access_denied",
                campaign_id=campaign_id,
                owner_id=campaign.user_id,
                caller_id=principal.user_id,
            )
            raise PermissionDeniedError("You are not the owner of this campaign")
        return campaign

    async def update_campaign(
        self, campaign_id: int, changes: Dict[str, Any], principal: Principal
    ) -> Campaign:
        """
        Apply the supplied fields to a campaign.

        Only keys present in ``changes`` are written. A name change re-derives
        the slug from the new name and the owner id.

        Raises:
            NotFoundError: If the campaign does not exist
            PermissionDeniedError: If the caller neither owns it nor is an admin
        """
        campaign = await self.find_owned_campaign(campaign_id, principal)

        applied = []
        for field in UPDATABLE_CAMPAIGN_FIELDS:
            if field in changes and changes[field] is not None:
                setattr(campaign, field, changes[field])
                applied.append(field)

        if "name" in applied:
            campaign.slug = make_slug(campaign.name, campaign.user_id)
        campaign.updated_at = utcnow()

        campaign = await self.repo.update(campaign)
        logger.info("campaign_updated", campaign_id=campaign.id, fields=applied)
        return campaign

    async def delete_campaign(self, campaign_id: int, principal: Principal) -> None:
        """
        Delete a campaign and its images.

        Raises:
            ConflictError: If transactions reference the campaign
        """
        campaign = await self.find_owned_campaign(campaign_id, principal)
        if await self.repo.has_transactions(campaign.id):
            raise ConflictError("Campaign has transactions and cannot be deleted")
        await self.repo.delete(campaign)

    async def save_campaign_image(
        self,
        campaign_id: int,
        file_location: str,
        is_primary: bool,
        principal: Principal,
    ) -> CampaignImage:
        """
        Attach an image to a campaign.

        A primary image first clears the flag on every existing image of the
        campaign; both writes share the request's database transaction.
        """
        campaign = await self.find_owned_campaign(campaign_id, principal)

        if is_primary:
            cleared = await self.repo.mark_all_images_as_non_primary(campaign.id)
            logger.info("campaign_images_unmarked", campaign_id=campaign.id, count=cleared)

        now = utcnow()
        image = CampaignImage(
            campaign_id=campaign.id,
            file_name=file_location,
            is_primary=is_primary,
            created_at=now,
            updated_at=now,
        )
        return await self.repo.create_image(image)
