"""User repository."""


from purchasing.domain.user import User
from purchasing.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    async def get_by_email(self, email: str) -> User | None:
        return await self.get_by(email=email.strip().lower())
