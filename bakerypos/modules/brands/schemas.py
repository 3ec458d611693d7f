from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from bakerypos.common.schemas import CamelModel


class BrandBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("Name cannot be empty")
        return cleaned


class BrandCreate(BrandBase):
    pass


class BrandUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None


class BrandOut(BrandBase):
    id: UUID
    store_id: UUID
    created_at: datetime
    updated_at: datetime
