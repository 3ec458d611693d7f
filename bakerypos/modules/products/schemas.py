from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from bakerypos.common.schemas import CamelModel, PaginatedResponse
from bakerypos.modules.products.models import ProductUnit, StockStatus


class ProductBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=200, description="Product name")
    sku: Optional[str] = Field(None, max_length=100)
    barcode: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    image: Optional[str] = Field(None, max_length=500, description="Image URL")
    category_id: Optional[UUID] = None
    brand_id: Optional[UUID] = None
    supplier_id: Optional[UUID] = None
    cost_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    selling_price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    unit: ProductUnit = ProductUnit.PCS
    wholesale_enabled: bool = False
    wholesale_min_qty: Optional[int] = Field(None, gt=0)
    wholesale_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    expiration_date: Optional[datetime] = None
    batch_number: Optional[str] = Field(None, max_length=100)
    allergens: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("Name cannot be empty")
        return cleaned


class ProductCreate(ProductBase):
    stock: int = Field(0, ge=0, description="Initial stock")
    min_stock_alert: Optional[int] = Field(None, ge=0, description="Low stock threshold")

    @model_validator(mode="after")
    def validate_wholesale(self):
        if self.wholesale_enabled and (self.wholesale_min_qty is None or self.wholesale_price is None):
            raise ValueError("Wholesale pricing needs a minimum quantity and a price")
        return self


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    sku: Optional[str] = Field(None, max_length=100)
    barcode: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    image: Optional[str] = Field(None, max_length=500)
    category_id: Optional[UUID] = None
    brand_id: Optional[UUID] = None
    supplier_id: Optional[UUID] = None
    cost_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    selling_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    unit: Optional[ProductUnit] = None
    stock: Optional[int] = Field(None, ge=0)
    min_stock_alert: Optional[int] = Field(None, ge=0)
    wholesale_enabled: Optional[bool] = None
    wholesale_min_qty: Optional[int] = Field(None, gt=0)
    wholesale_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    expiration_date: Optional[datetime] = None
    batch_number: Optional[str] = Field(None, max_length=100)
    allergens: Optional[str] = None


class StockAdjustment(CamelModel):
    """Manual stock correction: positive to receive goods, negative for waste."""
    delta: int = Field(..., description="Units to add (positive) or remove (negative)")
    reason: Optional[str] = Field(None, max_length=255)

    @field_validator("delta")
    @classmethod
    def validate_delta(cls, v: int) -> int:
        if v == 0:
            raise ValueError("Delta cannot be zero")
        return v


class ProductOut(ProductBase):
    id: UUID
    store_id: UUID
    stock: int
    min_stock_alert: int
    stock_status: StockStatus
    is_active: bool
    category_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


ProductList = PaginatedResponse[ProductOut]
