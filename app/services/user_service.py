"""User directory lookups for the notification engine"""

from typing import Any, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import UserNotFoundException
from app.models.user import User
from app.utils.helpers import parse_uuid

class UserService:
    """Read-only access to notification recipients"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, user_id: Any) -> User:
        """Get user by ID or raise UserNotFoundException"""
        key = parse_uuid(user_id)
        user = await self.db.get(User, key) if key else None
        if user is None:
            raise UserNotFoundException(user_id)
        return user

    async def find_all_active(self) -> List[User]:
        result = await self.db.execute(
            select(User).where(User.is_active == True).order_by(User.created_at)  # noqa: E712
        )
        return list(result.scalars().all())
