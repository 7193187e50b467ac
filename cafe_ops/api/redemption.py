"""Front-desk validation API.

Implements:
- POST /validate - Look up and classify a QR code (staff)
- POST /redeem - Consume a one-off service or start a check-in (staff)
- POST /scanner/start - Arm the desk's camera scan session (staff)
- POST /scanner/decoded - Feed a camera decode to the scan session (staff)
- POST /scanner/manual - Validate a typed code through the scan session (staff)
- POST /scanner/stop - Stop the desk's scan session (staff)
"""

from fastapi import APIRouter, Depends

from cafe_ops.api.deps import require_staff
from cafe_ops.api.errors import to_http_exception
from cafe_ops.exceptions import CafeOpsError
from cafe_ops.logging_config import get_logger
from cafe_ops.models import CodeRequest, RedeemResponse, ScanResponse, UserRecord, ValidateResponse
from cafe_ops.services.qr_scanner import get_scan_session
from cafe_ops.services.redemption_engine import ValidationResult, get_redemption_engine

logger = get_logger(__name__)
router = APIRouter(tags=["Redemption"])


def _validate_response(result: ValidationResult) -> ValidateResponse:
    return ValidateResponse(
        outcome=result.outcome.value,
        can_redeem=result.can_redeem,
        effective_status=result.effective_status,
        purchase=result.purchase,
        guest=result.guest,
        message=result.message,
    )


@router.post(
    "/validate",
    response_model=ValidateResponse,
    summary="Validate a QR code",
)
async def validate_code(request: CodeRequest, staff: UserRecord = Depends(require_staff)) -> ValidateResponse:
    """Classify a scanned or typed code without changing anything.

    Raises:
        404: No purchase matches the code
    """
    try:
        result = get_redemption_engine().validate(request.code)
    except CafeOpsError as e:
        raise to_http_exception(e)

    return _validate_response(result)


@router.post(
    "/redeem",
    response_model=RedeemResponse,
    summary="Redeem a QR code",
)
async def redeem_code(request: CodeRequest, staff: UserRecord = Depends(require_staff)) -> RedeemResponse:
    """Redeem a paid purchase.

    Raises:
        404: No purchase matches the code
        402: Payment not completed
        409: Already used, or lost a race with another redemption
        503: Write failed
    """
    logger.info("redeem_request", qr_code=request.code, staff_id=staff.id)

    try:
        result = get_redemption_engine().redeem(request.code)
    except CafeOpsError as e:
        raise to_http_exception(e)

    logger.info(
        "redeem_success",
        purchase_id=result.purchase.id,
        action=result.action.value,
        check_in_id=result.check_in.id if result.check_in else None,
    )

    return RedeemResponse(
        action=result.action.value,
        purchase=result.purchase,
        check_in=result.check_in,
        message=result.message,
    )


@router.post(
    "/scanner/start",
    response_model=ScanResponse,
    summary="Start scanning",
)
async def start_scan(staff: UserRecord = Depends(require_staff)) -> ScanResponse:
    """Arm the scan session; the next decode is validated once."""
    session = get_scan_session(staff.id)
    session.start()
    return ScanResponse(state=session.state.value, handled=False)


@router.post(
    "/scanner/decoded",
    response_model=ScanResponse,
    summary="Submit a camera decode",
)
async def submit_decode(request: CodeRequest, staff: UserRecord = Depends(require_staff)) -> ScanResponse:
    """Validate the first decode after start; later decodes are ignored.

    The session stops on the first decode even when validation fails, so a
    failed scan has to be started again.

    Raises:
        404: No purchase matches the code
    """
    session = get_scan_session(staff.id)
    try:
        result = session.on_decoded(request.code)
    except CafeOpsError as e:
        raise to_http_exception(e)

    if result is None:
        return ScanResponse(state=session.state.value, handled=False)
    return ScanResponse(state=session.state.value, handled=True, validation=_validate_response(result))


@router.post(
    "/scanner/manual",
    response_model=ScanResponse,
    summary="Submit a typed code",
)
async def submit_manual_code(request: CodeRequest, staff: UserRecord = Depends(require_staff)) -> ScanResponse:
    """Validate a typed code, stopping any scan in progress.

    Raises:
        404: No purchase matches the code
    """
    session = get_scan_session(staff.id)
    try:
        result = session.submit_manual(request.code)
    except CafeOpsError as e:
        raise to_http_exception(e)

    return ScanResponse(state=session.state.value, handled=True, validation=_validate_response(result))


@router.post(
    "/scanner/stop",
    response_model=ScanResponse,
    summary="Stop scanning",
)
async def stop_scan(staff: UserRecord = Depends(require_staff)) -> ScanResponse:
    session = get_scan_session(staff.id)
    session.stop()
    return ScanResponse(state=session.state.value, handled=False)
