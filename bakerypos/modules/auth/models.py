from sqlalchemy import Column, String, Boolean, ForeignKey, Enum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from uuid import uuid4
import enum

from bakerypos.database.database import Base
from bakerypos.common.mixins import TimestampMixin


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    CASHIER = "cashier"
    KITCHEN = "kitchen"


class AccessLevel(str, enum.Enum):
    ADMIN = "admin"
    POS_ONLY = "pos_only"
    KITCHEN_DISPLAY = "kitchen_display"
    REPORTS_ONLY = "reports_only"


class UserStatus(str, enum.Enum):
    PENDING = "pending"      # joined by invite code, waiting for the admin
    ACTIVE = "active"
    REJECTED = "rejected"


ROLE_ACCESS_LEVELS = {
    UserRole.ADMIN: AccessLevel.ADMIN,
    UserRole.MANAGER: AccessLevel.REPORTS_ONLY,
    UserRole.KITCHEN: AccessLevel.KITCHEN_DISPLAY,
    UserRole.CASHIER: AccessLevel.POS_ONLY,
}


def access_level_for_role(role: UserRole) -> AccessLevel:
    return ROLE_ACCESS_LEVELS.get(role, AccessLevel.POS_ONLY)


class User(Base, TimestampMixin):
    """
    Identity rows owned by the external auth provider.

    The API only reads role, access level, store binding and approval status;
    the profile completion and team endpoints are the only writers here.
    """
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4, index=True)
    email = Column(String(150), unique=True, nullable=False, index=True)
    name = Column(String(150), nullable=False)
    image = Column(String(500), nullable=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.CASHIER)
    access_level = Column(Enum(AccessLevel), nullable=False, default=AccessLevel.POS_ONLY)
    status = Column(Enum(UserStatus), nullable=False, default=UserStatus.ACTIVE)
    store_id = Column(UUID(as_uuid=True), ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    store = relationship("Store", back_populates="users")
