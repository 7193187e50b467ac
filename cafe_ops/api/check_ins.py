"""Check-in API.

Implements:
- GET /check-ins - Active and recent sessions (staff)
- GET /check-ins/{check_in_id} - Session with live elapsed time
- POST /check-ins/{check_in_id}/pause - Freeze the timer (staff)
- POST /check-ins/{check_in_id}/resume - Restart the timer (staff)
- POST /check-ins/{check_in_id}/check-out - Close the session (staff)
- GET /check-ins/{check_in_id}/elapsed/stream - Live elapsed time as server-sent events (staff)
"""

from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from cafe_ops.api.deps import ensure_owner_or_staff, get_actor, require_staff
from cafe_ops.api.errors import to_http_exception
from cafe_ops.exceptions import CafeOpsError, CheckInNotFoundError
from cafe_ops.logging_config import get_logger
from cafe_ops.models import (
    CheckInListResponse,
    CheckInRecord,
    CheckInResponse,
    CheckOutResponse,
    UserRecord,
)
from cafe_ops.services.elapsed_feed import to_event, watch_elapsed
from cafe_ops.services.session_timer import SessionTimer, elapsed_snapshot, get_session_timer

logger = get_logger(__name__)
router = APIRouter(tags=["Check-ins"], prefix="/check-ins")


def _describe(timer: SessionTimer, check_in: CheckInRecord, message: Optional[str] = None) -> CheckInResponse:
    snapshot = elapsed_snapshot(check_in, timer.clock.now_millis())
    return CheckInResponse(check_in=check_in, state=check_in.state, elapsed=snapshot, message=message)


@router.get(
    "",
    response_model=CheckInListResponse,
    summary="List active and recently closed check-ins",
)
async def list_check_ins(
        limit: int = Query(20, ge=1, le=200, description="Closed sessions to include"),
        staff: UserRecord = Depends(require_staff),
) -> CheckInListResponse:
    timer = get_session_timer()
    return CheckInListResponse(
        active=[_describe(timer, c) for c in timer.check_ins.get_active()],
        recent=[_describe(timer, c) for c in timer.check_ins.get_recent_closed(limit)],
    )


@router.get(
    "/{check_in_id}",
    response_model=CheckInResponse,
    summary="Get check-in",
)
async def get_check_in(check_in_id: str, actor: UserRecord = Depends(get_actor)) -> CheckInResponse:
    timer = get_session_timer()
    try:
        check_in = timer.check_ins.get_by_id(check_in_id)
    except CafeOpsError as e:
        raise to_http_exception(e)

    ensure_owner_or_staff(actor, check_in.guest_id)
    return _describe(timer, check_in)


@router.post(
    "/{check_in_id}/pause",
    response_model=CheckInResponse,
    summary="Pause a running session",
)
async def pause_check_in(check_in_id: str, staff: UserRecord = Depends(require_staff)) -> CheckInResponse:
    """Raises 409 unless the session is running."""
    logger.info("pause_check_in_request", check_in_id=check_in_id)
    timer = get_session_timer()
    try:
        check_in = timer.pause(check_in_id)
    except CafeOpsError as e:
        raise to_http_exception(e)
    return _describe(timer, check_in, "Session paused")


@router.post(
    "/{check_in_id}/resume",
    response_model=CheckInResponse,
    summary="Resume a paused session",
)
async def resume_check_in(check_in_id: str, staff: UserRecord = Depends(require_staff)) -> CheckInResponse:
    """Raises 409 unless the session is paused."""
    logger.info("resume_check_in_request", check_in_id=check_in_id)
    timer = get_session_timer()
    try:
        check_in = timer.resume(check_in_id)
    except CafeOpsError as e:
        raise to_http_exception(e)
    return _describe(timer, check_in, "Session resumed")


@router.post(
    "/{check_in_id}/check-out",
    response_model=CheckOutResponse,
    summary="Check out a session",
)
async def check_out(check_in_id: str, staff: UserRecord = Depends(require_staff)) -> CheckOutResponse:
    """Close a running or paused session.

    A multi-day pass that is still paid uses up one day-unit.

    Raises:
        404: Check-in not found
        409: Session already closed, or changed concurrently
        503: Write failed
    """
    logger.info("check_out_request", check_in_id=check_in_id)
    try:
        result = get_session_timer().check_out(check_in_id)
    except CafeOpsError as e:
        raise to_http_exception(e)

    message = f"Checked out after {result.elapsed.elapsed}"
    if result.progress_advanced and result.purchase is not None:
        message += f" ({result.purchase.progress_used}/{result.purchase.progress_total} days used)"

    return CheckOutResponse(
        check_in=result.check_in,
        purchase=result.purchase,
        progress_advanced=result.progress_advanced,
        elapsed=result.elapsed,
        message=message,
    )


@router.get(
    "/{check_in_id}/elapsed/stream",
    response_class=StreamingResponse,
    responses={200: {"content": {"text/event-stream": {}}}},
    summary="Stream live elapsed time",
)
async def stream_elapsed(
        check_in_id: str,
        interval: float = Query(1.0, gt=0, le=60, description="Seconds between updates"),
        staff: UserRecord = Depends(require_staff),
) -> StreamingResponse:
    """One event immediately, then one per interval while the session runs.

    The stream ends after the frozen value of a paused or closed session.
    """
    timer = get_session_timer()
    try:
        timer.check_ins.get_by_id(check_in_id)
    except CafeOpsError as e:
        raise to_http_exception(e)

    async def events() -> AsyncIterator[str]:
        try:
            async for snapshot in watch_elapsed(check_in_id, timer=timer, interval=interval):
                yield to_event(snapshot)
        except CheckInNotFoundError:
            logger.warning("elapsed_stream_check_in_gone", check_in_id=check_in_id)

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
