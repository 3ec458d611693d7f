from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from bakerypos.common.schemas import CamelModel


class StoreOut(CamelModel):
    id: UUID
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    tax_number: Optional[str] = None
    logo: Optional[str] = None
    invite_code: Optional[str] = None
    currency: str
    timezone: str
    created_at: datetime
    updated_at: datetime


class StoreUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=150)
    tax_number: Optional[str] = Field(None, max_length=50)
    logo: Optional[str] = Field(None, max_length=500)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    timezone: Optional[str] = Field(None, max_length=64)


class InviteCodeOut(CamelModel):
    invite_code: str
