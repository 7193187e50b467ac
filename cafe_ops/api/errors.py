"""Translation of domain exceptions into HTTP errors.

Every error body has the shape ``{"error": ..., "message": ...}``.
"""

from fastapi import HTTPException

from cafe_ops.exceptions import (
    ActiveCheckInExistsError,
    CafeOpsError,
    CheckInNotFoundError,
    DuplicateActivePurchaseError,
    GuestNotFoundError,
    InvalidTransitionError,
    PaymentNotCompletedError,
    PermissionDeniedError,
    PurchaseAlreadyUsedError,
    PurchaseNotFoundError,
    ServiceNotFoundError,
    StoreWriteError,
    WriteConflictError,
)
from cafe_ops.logging_config import get_logger

logger = get_logger(__name__)

# Most specific class first; WriteConflictError subclasses StoreWriteError
ERROR_STATUS = [
    (PurchaseNotFoundError, 404, "Purchase not found"),
    (CheckInNotFoundError, 404, "Check-in not found"),
    (ServiceNotFoundError, 404, "Service not found"),
    (GuestNotFoundError, 404, "Guest not found"),
    (PaymentNotCompletedError, 402, "Payment not completed"),
    (PermissionDeniedError, 403, "Permission denied"),
    (PurchaseAlreadyUsedError, 409, "Already used"),
    (InvalidTransitionError, 409, "Invalid state transition"),
    (ActiveCheckInExistsError, 409, "Active check-in exists"),
    (DuplicateActivePurchaseError, 409, "Duplicate purchase"),
    (WriteConflictError, 409, "Write conflict"),
    (StoreWriteError, 503, "Write failed"),
]


def to_http_exception(exc: CafeOpsError) -> HTTPException:
    """Map a domain exception to an HTTPException."""
    for error_class, status_code, error in ERROR_STATUS:
        if isinstance(exc, error_class):
            break
    else:
        status_code, error = 400, "Invalid request"

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "request_rejected",
        status_code=status_code,
        error=error,
        error_type=type(exc).__name__,
        message=str(exc),
    )

    return HTTPException(
        status_code=status_code,
        detail={
            "error": error,
            "message": str(exc),
        },
    )


def bad_request(message: str) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={
            "error": "Invalid request",
            "message": message,
        },
    )
