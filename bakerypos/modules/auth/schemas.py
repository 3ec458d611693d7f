from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from bakerypos.modules.auth.models import UserRole, AccessLevel, UserStatus


class AuthContext(BaseModel):
    """Authenticated principal as seen by the rest of the API."""
    user_id: UUID
    email: str
    name: str
    store_id: Optional[UUID] = None
    role: UserRole
    access_level: AccessLevel
    status: UserStatus

    model_config = {"from_attributes": True}

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
