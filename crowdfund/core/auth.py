"""Login use case."""
import structlog
from fastapi.concurrency import run_in_threadpool

from crowdfund.auth.jwt_service import JWTService
from crowdfund.auth.passwords import verify_password
from crowdfund.core.errors import AuthenticationError
from crowdfund.repositories.users import UserRepository

logger = structlog.get_logger(__name__)


class AuthService:
    def __init__(self, repo: UserRepository, jwt_service: JWTService):
        self.repo = repo
        self.jwt_service = jwt_service

    async def login(self, email: str, password: str) -> str:
        """
        Check credentials and issue an access token.

        Unknown emails and wrong passwords produce the same error.

        Raises:
            AuthenticationError: If the credentials do not match a user
        """
        user = await self.repo.find_by_email(email)
        if user is None or not await run_in_threadpool(
            verify_password, password, user.password_hash
        ):
            logger.info("login_failed")
            raise AuthenticationError("Invalid email or password")

        token = self.jwt_service.create_token(user)
        logger.info("login_succeeded", user_id=user.id, role=user.role)
        return token
