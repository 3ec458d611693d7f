from sqlalchemy import Column, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from bakerypos.database.database import Base
from bakerypos.common.mixins import BaseMixin


class Brand(Base, BaseMixin):
    __tablename__ = "brands"

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    products = relationship("Product", back_populates="brand")

    __table_args__ = (
        UniqueConstraint("store_id", "name", name="uq_brand_store_name"),
    )
