from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID
import logging

from bakerypos.core.exceptions import NotFoundError, ValidationError
from bakerypos.modules.auth.models import User, UserStatus

logger = logging.getLogger(__name__)


class TeamService:
    """Team management inside a single store (admin only at the router)"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_team(self, store_id: UUID) -> List[User]:
        result = await self.db.execute(
            select(User).where(User.store_id == store_id).order_by(User.created_at, User.email)
        )
        return list(result.scalars().all())

    async def _get_member(self, user_id: UUID, store_id: UUID) -> User:
        result = await self.db.execute(
            select(User).where(User.id == user_id, User.store_id == store_id)
        )
        user = result.scalar_one_or_none()
        if not user:
            raise NotFoundError("User not found")
        return user

    async def _set_status(self, user_id: UUID, store_id: UUID, new_status: UserStatus) -> User:
        user = await self._get_member(user_id, store_id)
        user.status = new_status
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"User {user_id} in store {store_id} set to {new_status.value}")
        return user

    async def approve(self, user_id: UUID, store_id: UUID) -> User:
        return await self._set_status(user_id, store_id, UserStatus.ACTIVE)

    async def reject(self, user_id: UUID, store_id: UUID) -> User:
        return await self._set_status(user_id, store_id, UserStatus.REJECTED)

    async def remove_from_store(self, user_id: UUID, store_id: UUID, acting_user_id: UUID) -> User:
        if user_id == acting_user_id:
            raise ValidationError("You cannot remove yourself from the store")

        user = await self._get_member(user_id, store_id)
        user.store_id = None
        user.status = UserStatus.REJECTED
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"User {user_id} removed from store {store_id}")
        return user
