"""User registration, profile and avatar use cases."""
from typing import Any, Dict, List, Optional, Tuple

import structlog
from fastapi.concurrency import run_in_threadpool

from crowdfund.auth.passwords import hash_password
from crowdfund.auth.policy import Principal, Role
from crowdfund.core.errors import ConflictError, NotFoundError, PermissionDeniedError
from crowdfund.core.pagination import Paging, validate_page
from crowdfund.database.models import User, utcnow
from crowdfund.repositories.users import UserRepository

logger = structlog.get_logger(__name__)

UPDATABLE_USER_FIELDS = ("name", "occupation", "email")


class UserService:
    """Business rules around platform users."""

    def __init__(self, repo: UserRepository):
        self.repo = repo

    async def register_user(
        self, name: str, occupation: str, email: str, password: str
    ) -> User:
        """
        Create a user with role "user" and a hashed password.

        Raises:
            ConflictError: If the email is already registered
        """
        if await self.repo.find_by_email(email) is not None:
            raise ConflictError("Email has been registered")

        password_hash = await run_in_threadpool(hash_password, password)
        now = utcnow()
        user = User(
            name=name,
            occupation=occupation,
            email=email,
            password_hash=password_hash,
            role=Role.USER.value,
            avatar_file_name=None,
            created_at=now,
            updated_at=now,
        )
        user = await self.repo.save(user)

        logger.info("user_registered", user_id=user.id)
        return user

    async def is_email_available(self, email: str) -> bool:
        return await self.repo.find_by_email(email) is None

    async def update_user(
        self, user_id: int, changes: Dict[str, Any], principal: Principal
    ) -> User:
        """
        Apply name/occupation/email changes to a user.

        Only the user themself or an admin may update a profile.

        Raises:
            PermissionDeniedError: If the caller is neither the user nor an admin
            NotFoundError: If the user does not exist
            ConflictError: If the new email belongs to another user
        """
        if not principal.can_act_for(user_id):
            raise PermissionDeniedError("You can only update your own profile")

        user = await self.find_by_id(user_id)

        new_email = changes.get("email")
        if new_email is not None and new_email != user.email:
            other = await self.repo.find_by_email(new_email)
            if other is not None and other.id != user.id:
                raise ConflictError("Email has been registered")

        for field in UPDATABLE_USER_FIELDS:
            if changes.get(field) is not None:
                setattr(user, field, changes[field])
        user.updated_at = utcnow()

        user = await self.repo.update(user)
        logger.info("user_updated", user_id=user.id, fields=sorted(changes))
        return user

    async def save_avatar(
        self, user_id: int, file_location: str, principal: Principal
    ) -> User:
        if not principal.can_act_for(user_id):
            raise PermissionDeniedError("You can only change your own avatar")

        user = await self.repo.save_avatar(user_id, file_location)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def find_all(self, page: int, size: int) -> Tuple[List[User], Paging]:
        validate_page(page, size)
        users, total_rows = await self.repo.find_all(page, size)
        return users, Paging.build(page, size, total_rows)

    async def find_by_id(self, user_id: int) -> User:
        user = await self.repo.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self.repo.find_by_email(email)
