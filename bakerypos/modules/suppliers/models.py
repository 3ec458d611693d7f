from sqlalchemy import Column, String, Text, Enum
from sqlalchemy.orm import relationship
import enum

from bakerypos.database.database import Base
from bakerypos.common.mixins import BaseMixin


class SupplierCategory(str, enum.Enum):
    PACKAGING = "packaging"
    INGREDIENTS = "ingredients"
    EQUIPMENT = "equipment"
    OTHER = "other"


class SupplierStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Supplier(Base, BaseMixin):
    __tablename__ = "suppliers"

    name = Column(String(150), nullable=False, index=True)
    contact_person = Column(String(150), nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(150), nullable=True)
    address = Column(Text, nullable=True)
    category = Column(Enum(SupplierCategory), nullable=True)
    status = Column(Enum(SupplierStatus), nullable=False, default=SupplierStatus.ACTIVE)
    notes = Column(Text, nullable=True)

    products = relationship("Product", back_populates="supplier")
