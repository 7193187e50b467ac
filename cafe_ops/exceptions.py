"""Exceptions raised by the store, the engines and the purchase manager.

Routers translate these into HTTP errors; nothing here is fatal.
"""

from typing import Optional


class CafeOpsError(Exception):
    """Base exception for café operations errors."""

    pass


class PurchaseNotFoundError(CafeOpsError):
    """No purchase matches the QR token or id."""

    def __init__(self, key: str, message: Optional[str] = None):
        self.key = key
        super().__init__(message or "Invalid QR code: no matching purchase found")


class PurchaseAlreadyUsedError(CafeOpsError):
    """Purchase is consumed or expired and cannot be used again."""

    def __init__(self, purchase_id: str, status: str):
        self.purchase_id = purchase_id
        self.status = status
        super().__init__(f"This service has already been {status}. It cannot be used again.")


class PaymentNotCompletedError(CafeOpsError):
    """Purchase is still pending payment."""

    def __init__(self, purchase_id: str):
        self.purchase_id = purchase_id
        super().__init__("Payment for this purchase has not been completed")


class InvalidTransitionError(CafeOpsError):
    """A check-in or purchase operation was called from the wrong state."""

    def __init__(self, record_id: str, from_state: str, action: str, reason: Optional[str] = None):
        self.record_id = record_id
        self.from_state = from_state
        self.action = action
        self.reason = reason or f"Cannot {action} from '{from_state}'"
        super().__init__(self.reason)


class CheckInNotFoundError(CafeOpsError):
    def __init__(self, check_in_id: str):
        self.check_in_id = check_in_id
        super().__init__(f"Check-in not found: {check_in_id}")


class ActiveCheckInExistsError(CafeOpsError):
    """Purchase already has an open session and the policy allows only one."""

    def __init__(self, purchase_id: str, check_in_id: str):
        self.purchase_id = purchase_id
        self.check_in_id = check_in_id
        super().__init__(f"Purchase {purchase_id} already has an active check-in ({check_in_id})")


class ServiceNotFoundError(CafeOpsError):
    def __init__(self, service_id: str):
        self.service_id = service_id
        super().__init__(f"Service not found or not available: {service_id}")


class GuestNotFoundError(CafeOpsError):
    def __init__(self, guest_id: str):
        self.guest_id = guest_id
        super().__init__(f"Guest not found: {guest_id}")


class DuplicateActivePurchaseError(CafeOpsError):
    """Guest already holds a paid purchase of the same time-based service."""

    def __init__(self, guest_id: str, service_id: str, purchase_id: str):
        self.guest_id = guest_id
        self.service_id = service_id
        self.purchase_id = purchase_id
        super().__init__(
            "Guest already has an active purchase for this service. Wait until it is used up or expires."
        )


class PermissionDeniedError(CafeOpsError):
    def __init__(self, message: str = "Access denied. Staff only."):
        super().__init__(message)


class StoreWriteError(CafeOpsError):
    """A transaction could not be applied. The user may retry."""

    pass


class WriteConflictError(StoreWriteError):
    """A transaction precondition no longer held when the write was applied."""

    def __init__(self, collection: str, record_id: str, field: str, expected, actual):
        self.collection = collection
        self.record_id = record_id
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{collection}/{record_id}: expected {field}={expected!r}, found {actual!r}"
        )
