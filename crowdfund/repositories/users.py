"""User persistence."""
from typing import List, Optional, Tuple

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crowdfund.core.pagination import offset_for
from crowdfund.database.models import User

logger = structlog.get_logger(__name__)


class UserRepository:
    """CRUD access to the users table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, user: User) -> User:
        """Insert a new user and return it with its generated id."""
        self.session.add(user)
        await self.session.flush()

        logger.info("user_saved", user_id=user.id)
        return user

    async def update(self, user: User) -> User:
        """Flush changes made to a loaded user."""
        self.session.add(user)
        await self.session.flush()
        return user

    async def save_avatar(self, user_id: int, file_location: str) -> Optional[User]:
        """Store the avatar path for a user. Returns None if the user is missing."""
        user = await self.find_by_id(user_id)
        if user is None:
            return None

        user.avatar_file_name = file_location
        await self.session.flush()

        logger.info("user_avatar_saved", user_id=user_id, file_location=file_location)
        return user

    async def find_all(self, page: int, size: int) -> Tuple[List[User], int]:
        """Return one page of users and the total row count."""
        stmt = select(User).order_by(User.id).limit(size).offset(offset_for(page, size))
        result = await self.session.execute(stmt)
        users = list(result.scalars().all())

        total_rows = await self.session.scalar(select(func.count()).select_from(User))
        return users, int(total_rows or 0)

    async def find_by_id(self, user_id: int) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def find_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
