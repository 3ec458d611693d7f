from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from bakerypos.common.schemas import CamelModel, PaginatedResponse
from bakerypos.modules.suppliers.models import SupplierCategory, SupplierStatus


class SupplierBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=150)
    contact_person: Optional[str] = Field(None, max_length=150)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=150)
    address: Optional[str] = None
    category: Optional[SupplierCategory] = None
    status: SupplierStatus = SupplierStatus.ACTIVE
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("Name cannot be empty")
        return cleaned


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    contact_person: Optional[str] = Field(None, max_length=150)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=150)
    address: Optional[str] = None
    category: Optional[SupplierCategory] = None
    status: Optional[SupplierStatus] = None
    notes: Optional[str] = None


class SupplierOut(SupplierBase):
    id: UUID
    store_id: UUID
    created_at: datetime
    updated_at: datetime


SupplierList = PaginatedResponse[SupplierOut]
