"""
Unit tests for UserService.
"""
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from crowdfund.auth.passwords import hash_password, verify_password
from crowdfund.auth.policy import Principal
from crowdfund.core.errors import ConflictError, NotFoundError, PermissionDeniedError
from crowdfund.core.users import UserService


class TestUserService:
    """Test suite for UserService."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_register_hashes_password_and_sets_role(self, user_repo: Any) -> None:
        service = UserService(user_repo)
        user = await service.register_user("Siti", "Nurse", "siti@example.com", "pass1234")

        assert user.id is not None
        assert user.role == "user"
        assert user.password_hash != "pass1234"
        assert verify_password("pass1234", user.password_hash)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_register_hashes_in_worker_thread(self, user_repo: Any) -> None:
        offload = AsyncMock(side_effect=lambda func, *args: func(*args))

        with patch("crowdfund.core.users.run_in_threadpool", offload):
            await UserService(user_repo).register_user(
                "Siti", "Nurse", "siti@example.com", "pass1234"
            )

        offload.assert_awaited_once_with(hash_password, "pass1234")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_registered_email_is_not_available(self, user_repo: Any) -> None:
        service = UserService(user_repo)
        assert await service.is_email_available("siti@example.com")

        await service.register_user("Siti", "Nurse", "siti@example.com", "pass1234")

        assert not await service.is_email_available("siti@example.com")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_duplicate_registration_conflicts(self, user_repo: Any, make_user: Any) -> None:
        make_user(email="siti@example.com")
        with pytest.raises(ConflictError):
            await UserService(user_repo).register_user(
                "Siti", "Nurse", "siti@example.com", "pass1234"
            )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_self(self, user_repo: Any, make_user: Any, principal_for: Any) -> None:
        user = make_user()
        updated = await UserService(user_repo).update_user(
            user.id, {"name": "Budi S.", "occupation": "Farmer"}, principal_for(user)
        )
        assert updated.name == "Budi S."
        assert updated.occupation == "Farmer"
        assert updated.email == "budi@example.com"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_other_user_forbidden(self, user_repo: Any, make_user: Any) -> None:
        user = make_user()
        other = make_user(email="other@example.com")
        with pytest.raises(PermissionDeniedError):
            await UserService(user_repo).update_user(
                user.id, {"name": "Hacked"}, Principal(user_id=other.id, role="user")
            )
        assert user.name == "Budi Santoso"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_admin_may_update_anyone(self, user_repo: Any, make_user: Any) -> None:
        user = make_user()
        admin = make_user(email="admin@example.com", role="admin")
        updated = await UserService(user_repo).update_user(
            user.id, {"occupation": "Doctor"}, Principal(user_id=admin.id, role="admin")
        )
        assert updated.occupation == "Doctor"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_to_taken_email_conflicts(
        self, user_repo: Any, make_user: Any, principal_for: Any
    ) -> None:
        user = make_user()
        make_user(email="taken@example.com")
        with pytest.raises(ConflictError):
            await UserService(user_repo).update_user(
                user.id, {"email": "taken@example.com"}, principal_for(user)
            )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_save_avatar(self, user_repo: Any, make_user: Any, principal_for: Any) -> None:
        user = make_user()
        updated = await UserService(user_repo).save_avatar(
            user.id, "images/avatars/1.png", principal_for(user)
        )
        assert updated.avatar_file_name == "images/avatars/1.png"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_find_by_id_missing(self, user_repo: Any) -> None:
        with pytest.raises(NotFoundError):
            await UserService(user_repo).find_by_id(404)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_find_all_paging(self, user_repo: Any, make_user: Any) -> None:
        for i in range(5):
            make_user(email=f"user{i}@example.com")

        users, paging = await UserService(user_repo).find_all(page=2, size=2)

        assert [u.email for u in users] == ["user2@example.com", "user3@example.com"]
        assert paging.total_rows == 5
        assert paging.total_pages == 3
