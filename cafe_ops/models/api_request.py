"""API request models for front-desk and control endpoints."""

from typing import Optional

from pydantic import BaseModel, Field

from cafe_ops.models.purchase import PurchaseStatus
from cafe_ops.models.user import UserRole


class SellRequest(BaseModel):
    """Request to sell a service to a guest."""

    guest_id: str = Field(..., description="Buying guest")
    service_id: str = Field(..., description="Catalog service ID (e.g. pc-weekly)")
    payment_method: Optional[str] = Field(None, description="cash, transfer, pos or online")
    status: PurchaseStatus = Field(default=PurchaseStatus.PAID, description="paid or pending")
    auto_check_in: bool = Field(default=False, description="Redeem immediately (walk-in sale)")

    class Config:
        json_schema_extra = {
            "example": {
                "guest_id": "guest-1",
                "service_id": "pc-daily",
                "payment_method": "cash",
                "status": "paid",
                "auto_check_in": True,
            }
        }


class CodeRequest(BaseModel):
    """A scanned or typed QR token."""

    code: str = Field(..., description="QR token; surrounding whitespace is ignored")

    class Config:
        json_schema_extra = {
            "example": {
                "code": "CAFEOS-1700000000000-k3j9qz1x8m2ab",
            }
        }


class CreateUserRequest(BaseModel):
    """Request to create a user via control API."""

    id: Optional[str] = Field(None, description="User ID (generated if omitted)")
    email: str = Field(..., description="Email address")
    name: str = Field(..., description="Display name")
    phone: Optional[str] = Field(None, description="Phone number")
    role: UserRole = Field(default=UserRole.GUEST, description="guest, admin or manager")
    is_banned: bool = Field(default=False, description="Blocked from the dashboard")

    class Config:
        json_schema_extra = {
            "example": {
                "email": "ada@example.com",
                "name": "Ada Obi",
                "phone": "+2348000000000",
                "role": "guest",
            }
        }


class AdvanceTimeRequest(BaseModel):
    """Request to advance virtual time."""

    days: Optional[int] = Field(0, ge=0, description="Days to advance")
    hours: Optional[int] = Field(0, ge=0, description="Hours to advance")
    minutes: Optional[int] = Field(0, ge=0, description="Minutes to advance")
    seconds: Optional[int] = Field(0, ge=0, description="Seconds to advance")

    class Config:
        json_schema_extra = {
            "example": {
                "days": 0,
                "hours": 1,
                "minutes": 30,
                "seconds": 0,
            }
        }


class SetTimeRequest(BaseModel):
    timestamp_millis: int = Field(..., ge=0, description="Target time (Unix millis)")


class FailWritesRequest(BaseModel):
    """Make the next ``count`` store transactions fail."""

    count: int = Field(1, ge=0, le=100, description="Number of transactions to fail")
