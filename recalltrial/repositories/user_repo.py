from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from recalltrial.config import settings
from recalltrial.models.user import User


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.s = session

    async def create(self, email: str, timezone: Optional[str] = None) -> User:
        u = User(
            email=email.strip().lower(),
            timezone=timezone or settings.DEFAULT_TIMEZONE,
        )
        self.s.add(u)
        await self.s.commit()
        await self.s.refresh(u)
        return u


UserRepo = UserRepository
__all__ = ["UserRepository", "UserRepo"]
