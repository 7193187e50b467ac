"""API response models.

Embedded purchase and check-in records serialize with their document
field names (qrCode, checkInTime, ...).
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from cafe_ops.models.check_in import CheckInRecord, CheckInState, ElapsedSnapshot
from cafe_ops.models.purchase import PurchaseRecord, PurchaseStatus
from cafe_ops.models.user import UserRecord


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")


class SaleResponse(BaseModel):
    """Response after selling a service."""

    purchase: PurchaseRecord
    check_in: Optional[CheckInRecord] = Field(None, description="Session opened by a walk-in sale")
    message: str = Field(..., description="Success message")


class PurchaseListResponse(BaseModel):
    guest_id: str
    purchases: List[PurchaseRecord]
    count: int


class ValidateResponse(BaseModel):
    """Result of a front-desk scan."""

    outcome: str = Field(..., description="eligible, already_used or payment_pending")
    can_redeem: bool
    effective_status: PurchaseStatus
    purchase: PurchaseRecord
    guest: Optional[UserRecord] = None
    message: str

    class Config:
        json_schema_extra = {
            "example": {
                "outcome": "eligible",
                "can_redeem": True,
                "effective_status": "paid",
                "purchase": {"id": "5b1f0c5e-...", "qrCode": "CAFEOS-1700000000000-x8k2m9q1z7"},
                "guest": {"id": "guest-1", "name": "Ada Obi"},
                "message": "Valid. Redeem to start a check-in.",
            }
        }


class ScanResponse(BaseModel):
    """State of a front-desk scan session and what a decode produced."""

    state: str = Field(..., description="scanning or idle")
    handled: bool = Field(..., description="False when the decode arrived after the session stopped")
    validation: Optional[ValidateResponse] = None


class RedeemResponse(BaseModel):
    action: str = Field(..., description="consumed or checked_in")
    purchase: PurchaseRecord
    check_in: Optional[CheckInRecord] = None
    message: str


class CheckInResponse(BaseModel):
    """A session with its live elapsed time."""

    check_in: CheckInRecord
    state: CheckInState
    elapsed: ElapsedSnapshot
    message: Optional[str] = None


class CheckOutResponse(BaseModel):
    check_in: CheckInRecord
    purchase: Optional[PurchaseRecord] = None
    progress_advanced: bool
    elapsed: ElapsedSnapshot
    message: str


class CheckInListResponse(BaseModel):
    """Active sessions and the most recent closed ones."""

    active: List[CheckInResponse]
    recent: List[CheckInResponse]


class TimeResponse(BaseModel):
    """Response after changing virtual time."""

    previous_time_millis: int
    current_time_millis: int
    advanced_by_millis: int
    message: str

    class Config:
        json_schema_extra = {
            "example": {
                "previous_time_millis": 1700000000000,
                "current_time_millis": 1700005400000,
                "advanced_by_millis": 5400000,
                "message": "Advanced time by 0 days, 1 hours, 30 minutes, 0 seconds",
            }
        }


class UserResponse(BaseModel):
    user: UserRecord
    message: str


class ResetResponse(BaseModel):
    purchases_deleted: int
    check_ins_deleted: int
    users_deleted: int
    time_reset: bool
    message: str


class StatusResponse(BaseModel):
    """Store and clock status."""

    current_time_millis: int
    clock_frozen: bool
    collections: Dict[str, int] = Field(..., description="Document count per collection")
    services: int
