"""State change logging for purchases and check-in sessions.

Tracks transitions with before/after values for auditing at the front desk.
"""

from typing import Any, Optional

from cafe_ops.logging_config import get_logger

logger = get_logger(__name__)


def _short(value: str) -> str:
    return value[:20] + "..." if len(value) > 20 else value


def log_purchase_status_change(
    qr_code: str,
    purchase_id: str,
    old_status: Any,
    new_status: Any,
    reason: Optional[str] = None,
    **extra_context: Any,
) -> None:
    """Log a purchase status transition.

    Args:
        qr_code: Purchase QR token
        purchase_id: Purchase ID
        old_status: Previous status value
        new_status: New status value
        reason: Reason for the change
        **extra_context: Additional context (guest_id, consumed_at, ...)
    """
    logger.info(
        "purchase_status_changed",
        qr_code=_short(qr_code),
        purchase_id=purchase_id,
        old_status=str(old_status),
        new_status=str(new_status),
        reason=reason,
        **extra_context,
    )


def log_check_in_state_change(
    check_in_id: str,
    purchase_id: str,
    old_state: Any,
    new_state: Any,
    **extra_context: Any,
) -> None:
    """Log a check-in session transition (running, paused, closed)."""
    logger.info(
        "check_in_state_changed",
        check_in_id=check_in_id,
        purchase_id=purchase_id,
        old_state=str(old_state),
        new_state=str(new_state),
        **extra_context,
    )


def log_progress_change(
    purchase_id: str,
    old_used: int,
    new_used: int,
    total: int,
    **extra_context: Any,
) -> None:
    """Log day-unit progress on a multi-day pass."""
    logger.info(
        "purchase_progress_changed",
        purchase_id=purchase_id,
        old_used=old_used,
        new_used=new_used,
        total=total,
        remaining=max(total - new_used, 0),
        **extra_context,
    )


def log_paused_time_change(
    check_in_id: str,
    old_total_millis: int,
    new_total_millis: int,
    **extra_context: Any,
) -> None:
    """Log growth of a session's accumulated paused time."""
    logger.debug(
        "paused_time_changed",
        check_in_id=check_in_id,
        old_total_millis=old_total_millis,
        new_total_millis=new_total_millis,
        added_millis=new_total_millis - old_total_millis,
        **extra_context,
    )
