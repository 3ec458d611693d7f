from sqlalchemy import Column, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from uuid import uuid4

from bakerypos.database.database import Base
from bakerypos.common.mixins import TimestampMixin
from bakerypos.core.config import settings


class Store(Base, TimestampMixin):
    """Tenant boundary: catalog, users and transactions all hang off a store."""
    __tablename__ = "stores"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4, index=True)
    name = Column(String(150), nullable=False)
    address = Column(Text, nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(150), nullable=True)
    tax_number = Column(String(50), nullable=True)
    logo = Column(String(500), nullable=True)
    # Code managers/cashiers/kitchen staff use to join this store
    invite_code = Column(String(8), unique=True, nullable=True, index=True)
    currency = Column(String(3), nullable=False, default=lambda: settings.DEFAULT_CURRENCY)
    timezone = Column(String(64), nullable=False, default=lambda: settings.DEFAULT_TIMEZONE)

    users = relationship("User", back_populates="store")
