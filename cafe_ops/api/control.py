"""Control API for local operation and test orchestration.

Implements:
- POST /control/users - Create a guest or staff user
- POST /control/time/advance - Fast-forward the clock
- POST /control/time/set - Jump the clock to a timestamp
- POST /control/time/reset - Return to the wall clock
- POST /control/store/fail-writes - Make upcoming store writes fail
- POST /control/reset - Clear every collection and reset the clock
- GET /control/status - Clock and store status
"""

import time

from fastapi import APIRouter, HTTPException

from cafe_ops.api.errors import bad_request
from cafe_ops.logging_config import get_logger
from cafe_ops.models import (
    AdvanceTimeRequest,
    CreateUserRequest,
    FailWritesRequest,
    ResetResponse,
    SetTimeRequest,
    StatusResponse,
    TimeResponse,
    UserRecord,
    UserResponse,
)
from cafe_ops.repositories.document_store import CHECK_INS, PURCHASES, USERS, get_document_store
from cafe_ops.repositories.service_catalog import get_service_catalog
from cafe_ops.repositories.user_repository import UserRepository
from cafe_ops.services.qr_scanner import reset_scan_sessions
from cafe_ops.services.time_controller import get_time_controller
from cafe_ops.utils.token_generator import generate_id

logger = get_logger(__name__)
router = APIRouter(tags=["Control API"], prefix="/control")


def _time_response(result: dict, message: str) -> TimeResponse:
    return TimeResponse(
        previous_time_millis=result["old_time_millis"],
        current_time_millis=result["new_time_millis"],
        advanced_by_millis=result["new_time_millis"] - result["old_time_millis"],
        message=message,
    )


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=201,
    summary="Create user",
)
async def create_user(request: CreateUserRequest) -> UserResponse:
    """Create a guest, admin or manager.

    Raises:
        400: Id or email already taken
    """
    now = get_time_controller().now_millis()
    user = UserRecord(
        id=request.id or generate_id(),
        email=request.email,
        name=request.name,
        phone=request.phone,
        role=request.role,
        is_banned=request.is_banned,
        created_at=now,
        updated_at=now,
    )

    try:
        UserRepository().add(user)
    except ValueError as e:
        logger.warning("create_user_rejected", email=request.email, error=str(e))
        raise bad_request(str(e))

    logger.info("user_created", user_id=user.id, role=user.role.value)
    return UserResponse(user=user, message="User created successfully")


@router.post(
    "/time/advance",
    response_model=TimeResponse,
    summary="Advance virtual time",
)
async def advance_time(request: AdvanceTimeRequest) -> TimeResponse:
    """Move the clock forward.

    Running sessions accumulate the advanced time; purchases past their
    validity deadline read as expired from then on.
    """
    logger.info(
        "advance_time_request",
        days=request.days,
        hours=request.hours,
        minutes=request.minutes,
        seconds=request.seconds,
    )

    try:
        result = get_time_controller().advance_time(
            days=request.days or 0,
            hours=request.hours or 0,
            minutes=request.minutes or 0,
            seconds=request.seconds or 0,
        )
    except ValueError as e:
        raise bad_request(str(e))

    return _time_response(
        result,
        f"Advanced time by {request.days or 0} days, {request.hours or 0} hours, "
        f"{request.minutes or 0} minutes, {request.seconds or 0} seconds",
    )


@router.post(
    "/time/set",
    response_model=TimeResponse,
    summary="Set virtual time to specific timestamp",
)
async def set_time(request: SetTimeRequest) -> TimeResponse:
    """Raises 400 when the timestamp lies in the virtual past."""
    try:
        result = get_time_controller().set_time(request.timestamp_millis)
    except ValueError as e:
        logger.warning("set_time_rejected", error=str(e))
        raise bad_request(str(e))

    return _time_response(result, f"Time set to {request.timestamp_millis}")


@router.post(
    "/time/reset",
    response_model=TimeResponse,
    summary="Reset virtual time to the wall clock",
)
async def reset_time() -> TimeResponse:
    result = get_time_controller().reset_time()
    return _time_response(result, "Time reset to wall clock")


@router.post(
    "/store/fail-writes",
    summary="Fail upcoming store writes",
)
async def fail_writes(request: FailWritesRequest) -> dict:
    """Simulate an unreachable store for the next ``count`` transactions."""
    get_document_store().inject_write_failures(request.count)
    return {
        "pending_failures": request.count,
        "message": f"Next {request.count} write(s) will fail",
    }


@router.post(
    "/reset",
    response_model=ResetResponse,
    summary="Reset store and clock",
)
async def reset_all() -> ResetResponse:
    """Clear every collection and reset the clock.

    Useful for starting fresh between test runs.
    """
    logger.info("reset_request")

    try:
        store = get_document_store()
        stats = store.get_statistics()

        store.clear()
        get_time_controller().reset_time()
        reset_scan_sessions()
    except Exception as e:
        logger.error("reset_failed", error=str(e))
        raise HTTPException(
            status_code=500,
            detail={
                "error": "Internal error",
                "message": str(e),
            },
        )

    logger.info(
        "reset_success",
        purchases_deleted=stats.get(PURCHASES, 0),
        check_ins_deleted=stats.get(CHECK_INS, 0),
        users_deleted=stats.get(USERS, 0),
    )

    return ResetResponse(
        purchases_deleted=stats.get(PURCHASES, 0),
        check_ins_deleted=stats.get(CHECK_INS, 0),
        users_deleted=stats.get(USERS, 0),
        time_reset=True,
        message="State reset successfully",
    )


@router.get(
    "/status",
    response_model=StatusResponse,
    summary="Get clock and store status",
)
async def get_status() -> StatusResponse:
    clock = get_time_controller()
    now = clock.now_millis()
    logger.debug("status_requested", drift_millis=now - int(time.time() * 1000))

    return StatusResponse(
        current_time_millis=now,
        clock_frozen=clock.frozen,
        collections=get_document_store().get_statistics(),
        services=len(get_service_catalog()),
    )
