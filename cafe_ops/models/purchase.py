"""Purchase models - a guest's entitlement to a service.

Stored in the ``purchases`` collection using the camelCase field names
(qrCode, progressUsed, ...) of the dashboard documents.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from cafe_ops.models.service import ServiceType


class PurchaseStatus(str, Enum):
    """Purchase lifecycle: pending -> paid -> consumed | expired."""

    PENDING = "pending"  # Payment in flight
    PAID = "paid"  # Redeemable
    CONSUMED = "consumed"  # Used up (terminal)
    EXPIRED = "expired"  # Past its validity deadline (terminal)

    @property
    def is_terminal(self) -> bool:
        return self in (PurchaseStatus.CONSUMED, PurchaseStatus.EXPIRED)


class PurchaseRecord(BaseModel):
    """A purchased service and its redemption state."""

    id: str = Field(..., description="Purchase ID")
    guest_id: str = Field(..., alias="guestId", description="Owning guest")
    service_id: str = Field(..., alias="serviceId", description="Purchased service")
    service_name: str = Field(..., alias="serviceName", description="Service name at purchase time")
    service_type: ServiceType = Field(..., alias="serviceType", description="Service type at purchase time")
    amount: float = Field(..., description="Amount paid")
    payment_reference: str = Field(..., alias="paymentReference", description="Unique payment reference")
    payment_method: Optional[str] = Field(None, alias="paymentMethod", description="cash, transfer, pos, online")
    qr_code: str = Field(..., alias="qrCode", description="Unique QR token")
    status: PurchaseStatus = Field(default=PurchaseStatus.PAID, description="Lifecycle status")

    consumed_at: Optional[int] = Field(None, alias="consumedAt", description="Consumption time (Unix millis)")
    valid_until: Optional[int] = Field(None, alias="validUntil", description="Validity deadline (Unix millis)")

    # Multi-day passes
    progress_used: Optional[int] = Field(None, alias="progressUsed", ge=0, description="Day-units used")
    progress_total: Optional[int] = Field(None, alias="progressTotal", ge=1, description="Day-units granted")

    created_at: int = Field(..., alias="createdAt", description="Creation time (Unix millis)")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": "5b1f0c5e-...",
                "guestId": "guest-1",
                "serviceId": "pc-weekly",
                "serviceName": "PC Weekly Pass",
                "serviceType": "weekly",
                "amount": 15000,
                "paymentReference": "CAFEOS-1700000000000-K3J9QZ1",
                "paymentMethod": "cash",
                "qrCode": "CAFEOS-1700000000000-x8k2m9q1z7",
                "status": "paid",
                "progressUsed": 0,
                "progressTotal": 7,
                "createdAt": 1700000000000,
            }
        }

    @property
    def is_multi_day(self) -> bool:
        """Multi-day passes advance progress on every check-out."""
        return (self.progress_total or 0) > 1

    def is_expired(self, now_millis: int) -> bool:
        """Lazy expiry check; never mutates the stored status."""
        if self.status == PurchaseStatus.EXPIRED:
            return True
        return self.valid_until is not None and now_millis > self.valid_until

    def effective_status(self, now_millis: int) -> PurchaseStatus:
        """Status as it should be displayed or checked at ``now_millis``."""
        if self.status == PurchaseStatus.PAID and self.is_expired(now_millis):
            return PurchaseStatus.EXPIRED
        return self.status

    def set_status(self, new_status: PurchaseStatus, reason: Optional[str] = None) -> None:
        """Change status and log the transition.

        Args:
            new_status: New purchase status
            reason: Reason for the change
        """
        from cafe_ops.state_logger import log_purchase_status_change

        old_status = self.status
        if old_status != new_status:
            self.status = new_status
            log_purchase_status_change(
                qr_code=self.qr_code,
                purchase_id=self.id,
                old_status=old_status.value,
                new_status=new_status.value,
                reason=reason,
                guest_id=self.guest_id,
            )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "PurchaseRecord":
        return cls.model_validate(document)
