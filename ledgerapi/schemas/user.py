import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ledgerapi.models.user import UserRole


class User(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    role: UserRole = UserRole.USER
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def is_admin(self) -> bool:
        return UserRole.is_admin(self.role)
