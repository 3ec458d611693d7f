from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, model_validator

from bakerypos.common.schemas import CamelModel
from bakerypos.modules.auth.models import UserRole, AccessLevel, UserStatus


class TeamMemberOut(CamelModel):
    id: UUID
    email: str
    name: str
    image: Optional[str] = None
    role: UserRole
    access_level: AccessLevel
    status: UserStatus
    store_id: Optional[UUID] = None
    created_at: datetime


class CompleteProfileRequest(CamelModel):
    role: UserRole
    store_name: Optional[str] = Field(None, max_length=150)
    store_address: Optional[str] = None
    store_phone: Optional[str] = Field(None, max_length=30)
    invite_code: Optional[str] = Field(None, max_length=8)

    @model_validator(mode="after")
    def strip_blank(self):
        for field in ("store_name", "store_address", "store_phone", "invite_code"):
            value = getattr(self, field)
            if isinstance(value, str) and not value.strip():
                setattr(self, field, None)
        return self
