"""Check-in session models.

A check-in is one timed occupancy session against a time-based purchase.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class CheckInState(str, Enum):
    """Derived session state."""

    RUNNING = "running"  # Active, timer advancing
    PAUSED = "paused"  # Active, timer frozen at pausedAt
    CLOSED = "closed"  # Checked out (terminal)


class CheckInRecord(BaseModel):
    """Internal record for a check-in session."""

    id: str = Field(..., description="Check-in ID")
    guest_id: str = Field(..., alias="guestId", description="Checked-in guest")
    purchase_id: str = Field(..., alias="purchaseId", description="Purchase being used")

    # Timestamps (Unix millis)
    check_in_time: int = Field(..., alias="checkInTime", description="Session start")
    paused_at: Optional[int] = Field(None, alias="pausedAt", description="Start of the current pause")
    check_out_time: Optional[int] = Field(None, alias="checkOutTime", description="Session end")

    total_paused_time: int = Field(default=0, alias="totalPausedTime", ge=0, description="Completed pauses (millis)")
    is_active: bool = Field(default=True, alias="isActive", description="Session still open")
    created_at: int = Field(..., alias="createdAt", description="Creation time (Unix millis)")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": "0d3c2e8a-...",
                "guestId": "guest-1",
                "purchaseId": "5b1f0c5e-...",
                "checkInTime": 1700000000000,
                "pausedAt": None,
                "checkOutTime": None,
                "totalPausedTime": 0,
                "isActive": True,
                "createdAt": 1700000000000,
            }
        }

    @property
    def state(self) -> CheckInState:
        if not self.is_active:
            return CheckInState.CLOSED
        if self.paused_at is not None:
            return CheckInState.PAUSED
        return CheckInState.RUNNING

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "CheckInRecord":
        return cls.model_validate(document)


class ElapsedSnapshot(BaseModel):
    """Active session time at one instant."""

    check_in_id: str = Field(..., description="Check-in ID")
    state: CheckInState = Field(..., description="Session state")
    elapsed_millis: int = Field(..., ge=0, description="Active (non-paused) time in millis")
    elapsed: str = Field(..., description="Active time as HH:MM:SS")
    computed_at: int = Field(..., description="Instant of computation (Unix millis)")
