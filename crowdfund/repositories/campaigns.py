"""Campaign and campaign image persistence."""
from typing import List, Optional, Tuple

import structlog
from sqlalchemy import Select, exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from crowdfund.core.pagination import offset_for
from crowdfund.database.models import Campaign, CampaignImage, Transaction

logger = structlog.get_logger(__name__)


class CampaignRepository:
    """
    CRUD access to campaigns and their images.

    Campaigns are always loaded together with their owner and images so that
    callers never trigger lazy loads on the async session.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _base_query() -> Select:
        return select(Campaign).options(
            selectinload(Campaign.user),
            selectinload(Campaign.campaign_images),
        )

    async def create(self, campaign: Campaign) -> Campaign:
        """Insert a campaign and return it reloaded with owner and images."""
        self.session.add(campaign)
        await self.session.flush()

        logger.info("campaign_created", campaign_id=campaign.id, slug=campaign.slug)
        return await self._reload(campaign.id)

    async def update(self, campaign: Campaign) -> Campaign:
        """Flush changes made to a loaded campaign and return it reloaded."""
        self.session.add(campaign)
        await self.session.flush()
        return await self._reload(campaign.id)

    async def delete(self, campaign: Campaign) -> None:
        await self.session.delete(campaign)
        await self.session.flush()
        logger.info("campaign_deleted", campaign_id=campaign.id)

    async def find_all(
        self, page: int, size: int, user_id: Optional[int] = None
    ) -> Tuple[List[Campaign], int]:
        """Return one page of campaigns (optionally one owner's) and the total count."""
        stmt = self._base_query().order_by(Campaign.id)
        count_stmt = select(func.count()).select_from(Campaign)
        if user_id is not None:
            stmt = stmt.where(Campaign.user_id == user_id)
            count_stmt = count_stmt.where(Campaign.user_id == user_id)

        result = await self.session.execute(stmt.limit(size).offset(offset_for(page, size)))
        campaigns = list(result.scalars().all())

        total_rows = await self.session.scalar(count_stmt)
        return campaigns, int(total_rows or 0)

    async def find_by_id(self, campaign_id: int) -> Optional[Campaign]:
        stmt = (
            self._base_query()
            .where(Campaign.id == campaign_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def has_transactions(self, campaign_id: int) -> bool:
        stmt = select(exists().where(Transaction.campaign_id == campaign_id))
        return bool(await self.session.scalar(stmt))

    async def create_image(self, image: CampaignImage) -> CampaignImage:
        self.session.add(image)
        await self.session.flush()

        logger.info(
            "campaign_image_created",
            campaign_id=image.campaign_id,
            image_id=image.id,
            is_primary=image.is_primary,
        )
        return image

    async def mark_all_images_as_non_primary(self, campaign_id: int) -> int:
        """Clear the primary flag on every image of a campaign. Returns rows touched."""
        stmt = (
            update(CampaignImage)
            .where(CampaignImage.campaign_id == campaign_id)
            .values(is_primary=False)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def _reload(self, campaign_id: int) -> Campaign:
        campaign = await self.find_by_id(campaign_id)
        if campaign is None:
            raise LookupError(f"Campaign {campaign_id} vanished after flush")
        return campaign
