"""Login against the users table."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from purchasing.core.exceptions import UnauthorizedError
from purchasing.core.security import verify_password
from purchasing.domain.user import User
from purchasing.repositories.user import UserRepository

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, session: AsyncSession, client_id: str):
        self._users = UserRepository(session, client_id)

    async def authenticate(self, email: str, password: str) -> User:
        user = await self._users.get_by_email(email)
        if user is None or not user.is_active or not verify_password(password, user.password_hash):
            logger.info("Failed login for %s", email)
            raise UnauthorizedError("Invalid email or password")
        logger.info("User %s logged in", user.email)
        return user
