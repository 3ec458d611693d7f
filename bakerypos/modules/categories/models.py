from sqlalchemy import Column, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from bakerypos.database.database import Base
from bakerypos.common.mixins import BaseMixin


class Category(Base, BaseMixin):
    __tablename__ = "categories"

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(20), nullable=True)  # UI badge colour

    products = relationship("Product", back_populates="category")

    __table_args__ = (
        UniqueConstraint("store_id", "name", name="uq_category_store_name"),
    )
