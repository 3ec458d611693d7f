from sqlalchemy import Column, String, Text, Integer, Numeric, Boolean, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import enum

from bakerypos.database.database import Base
from bakerypos.common.mixins import BaseMixin
from bakerypos.core.config import settings


class StockStatus(str, enum.Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


class ProductUnit(str, enum.Enum):
    PCS = "pcs"
    KG = "kg"
    G = "g"
    L = "l"
    ML = "ml"
    PACK = "pack"


class Product(Base, BaseMixin):
    """
    Sellable item of a store.

    ``stock_status`` is a cached projection of ``stock`` and
    ``min_stock_alert``; it is rewritten with ``derive_stock_status`` on every
    change to either of them.
    """
    __tablename__ = "products"

    name = Column(String(200), nullable=False, index=True)
    sku = Column(String(100), nullable=True)
    barcode = Column(String(100), nullable=True, index=True)
    description = Column(Text, nullable=True)
    image = Column(String(500), nullable=True)

    category_id = Column(UUID(as_uuid=True), ForeignKey("categories.id"), nullable=True, index=True)
    brand_id = Column(UUID(as_uuid=True), ForeignKey("brands.id"), nullable=True, index=True)
    supplier_id = Column(UUID(as_uuid=True), ForeignKey("suppliers.id"), nullable=True, index=True)

    # Pricing
    cost_price = Column(Numeric(12, 2), nullable=True)
    selling_price = Column(Numeric(12, 2), nullable=False)
    unit = Column(Enum(ProductUnit), nullable=False, default=ProductUnit.PCS)

    # Stock
    stock = Column(Integer, nullable=False, default=0)
    min_stock_alert = Column(Integer, nullable=False, default=lambda: settings.DEFAULT_MIN_STOCK_ALERT)
    stock_status = Column(Enum(StockStatus), nullable=False, default=StockStatus.IN_STOCK, index=True)

    # Wholesale pricing
    wholesale_enabled = Column(Boolean, nullable=False, default=False)
    wholesale_min_qty = Column(Integer, nullable=True)
    wholesale_price = Column(Numeric(12, 2), nullable=True)

    # Bakery specific
    expiration_date = Column(DateTime(timezone=True), nullable=True)
    batch_number = Column(String(100), nullable=True)
    allergens = Column(Text, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    category = relationship("Category", back_populates="products")
    brand = relationship("Brand", back_populates="products")
    supplier = relationship("Supplier", back_populates="products")

    __table_args__ = (
        UniqueConstraint("store_id", "sku", name="uq_product_store_sku"),
    )

    @property
    def category_name(self):
        # only populated when the category relationship was eagerly loaded
        category = self.__dict__.get("category")
        return category.name if category is not None else None
