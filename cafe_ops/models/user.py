"""User records - guests and staff."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    GUEST = "guest"
    ADMIN = "admin"
    MANAGER = "manager"


STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.MANAGER})


class UserRecord(BaseModel):
    """A user of the dashboard. Credentials live elsewhere."""

    id: str = Field(..., description="User ID")
    email: str = Field(..., description="Email address")
    name: str = Field(..., description="Display name")
    phone: Optional[str] = Field(None, description="Phone number")
    role: UserRole = Field(default=UserRole.GUEST, description="guest, admin or manager")
    is_banned: bool = Field(default=False, alias="isBanned", description="Blocked from the dashboard")
    created_at: int = Field(..., alias="createdAt", description="Creation time (Unix millis)")
    updated_at: int = Field(..., alias="updatedAt", description="Last update (Unix millis)")

    class Config:
        populate_by_name = True

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "UserRecord":
        return cls.model_validate(document)
