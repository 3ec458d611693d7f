from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException
from typing import Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging
import secrets
import string

from bakerypos.core.config import settings
from bakerypos.core.exceptions import NotFoundError, ValidationError, ConflictError, PersistenceError
from bakerypos.modules.stores.models import Store
from bakerypos.modules.stores.schemas import StoreUpdate
from bakerypos.modules.auth.models import User, UserRole, UserStatus, access_level_for_role

logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
INVITE_CODE_LENGTH = 8
INVITE_CODE_ATTEMPTS = 5


def generate_invite_code() -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


def validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone '{name}'")
    return name


def store_zone(store: Store) -> ZoneInfo:
    """Timezone used to turn calendar days into instants for this store."""
    try:
        return ZoneInfo(store.timezone or settings.DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Store {store.id} has invalid timezone {store.timezone!r}, using UTC")
        return ZoneInfo("UTC")


async def get_store_zone(db: AsyncSession, store_id: UUID) -> ZoneInfo:
    result = await db.execute(select(Store).where(Store.id == store_id))
    store = result.scalar_one_or_none()
    if not store:
        raise NotFoundError("Store not found")
    return store_zone(store)


class StoreService:
    """Tenant registry: store profile, invite codes and the join flow"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_store(self, store_id: UUID) -> Store:
        result = await self.db.execute(select(Store).where(Store.id == store_id))
        store = result.scalar_one_or_none()
        if not store:
            raise NotFoundError("Store not found")
        return store

    async def update_store(self, store_id: UUID, data: StoreUpdate) -> Store:
        store = await self.get_store(store_id)
        update_dict = data.model_dump(exclude_unset=True)

        if update_dict.get("timezone") is not None:
            validate_timezone(update_dict["timezone"])
        if update_dict.get("currency") is not None:
            update_dict["currency"] = update_dict["currency"].upper()

        for field, value in update_dict.items():
            if field == "name" and value is None:
                continue
            setattr(store, field, value)

        await self.db.commit()
        await self.db.refresh(store)
        return store

    async def regenerate_invite_code(self, store_id: UUID) -> Store:
        store = await self.get_store(store_id)
        for _ in range(INVITE_CODE_ATTEMPTS):
            store.invite_code = generate_invite_code()
            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                store = await self.get_store(store_id)
                continue
            await self.db.refresh(store)
            logger.info(f"Store {store_id} invite code regenerated")
            return store
        raise PersistenceError("Could not allocate a unique invite code", retryable=True)

    async def _new_store(self, name: Optional[str], address: Optional[str], phone: Optional[str]) -> Store:
        for _ in range(INVITE_CODE_ATTEMPTS):
            store = Store(
                name=name or "My Store",
                address=address,
                phone=phone,
                invite_code=generate_invite_code(),
                currency=settings.DEFAULT_CURRENCY,
                timezone=settings.DEFAULT_TIMEZONE
            )
            self.db.add(store)
            try:
                await self.db.flush()
            except IntegrityError:
                await self.db.rollback()
                continue
            return store
        raise PersistenceError("Could not allocate a unique invite code", retryable=True)

    async def complete_profile(
        self,
        user_id: UUID,
        role: UserRole,
        store_name: Optional[str] = None,
        store_address: Optional[str] = None,
        store_phone: Optional[str] = None,
        invite_code: Optional[str] = None
    ) -> User:
        """
        Bind a freshly registered user to a store.

        Admins create their own store and are active immediately; every other
        role joins an existing store by invite code and waits for approval.
        """
        try:
            result = await self.db.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()
            if not user:
                raise NotFoundError("User not found")
            if user.store_id is not None:
                raise ConflictError("Profile already completed")

            if role == UserRole.ADMIN:
                store = await self._new_store(store_name, store_address, store_phone)
                # _new_store may have rolled back; reload the user in the fresh transaction
                user = await self.db.get(User, user_id)
                user_status = UserStatus.ACTIVE
                logger.info(f"Created store '{store.name}' ({store.id}) for admin {user_id}")
            else:
                if not invite_code:
                    raise ValidationError("Invite code is required")
                result = await self.db.execute(
                    select(Store).where(Store.invite_code == invite_code.strip().upper())
                )
                store = result.scalar_one_or_none()
                if not store:
                    raise ValidationError("Invalid invite code")
                user_status = UserStatus.PENDING
                logger.info(f"User {user_id} joined store {store.id} as {role.value}, pending approval")

            user.role = role
            user.access_level = access_level_for_role(role)
            user.store_id = store.id
            user.status = user_status

            await self.db.commit()
            await self.db.refresh(user)
            return user

        except HTTPException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"Error completing profile for user {user_id}: {e}")
            raise PersistenceError("Internal server error")
