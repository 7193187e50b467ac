"""Purchase API.

Implements:
- POST /purchases - Sell a service (staff)
- GET /purchases/{purchase_id} - Get purchase
- GET /guests/{guest_id}/purchases - List a guest's purchases
- POST /purchases/{purchase_id}/confirm-payment - Mark a pending purchase paid (staff)
- POST /purchases/{purchase_id}/expire - Expire a paid purchase (staff)
- GET /purchases/{purchase_id}/qr.png - Voucher QR image
"""

from fastapi import APIRouter, Depends, Response

from cafe_ops.api.deps import ensure_owner_or_staff, get_actor, require_staff
from cafe_ops.api.errors import bad_request, to_http_exception
from cafe_ops.exceptions import CafeOpsError
from cafe_ops.logging_config import get_logger
from cafe_ops.models import (
    PurchaseListResponse,
    PurchaseRecord,
    SaleResponse,
    SellRequest,
    UserRecord,
)
from cafe_ops.services.purchase_manager import get_purchase_manager
from cafe_ops.services.voucher_qr import render_qr_png

logger = get_logger(__name__)
router = APIRouter(tags=["Purchases"])


@router.post(
    "/purchases",
    response_model=SaleResponse,
    status_code=201,
    summary="Sell a service to a guest",
)
async def sell_service(request: SellRequest, staff: UserRecord = Depends(require_staff)) -> SaleResponse:
    """Create a purchase for a guest.

    With ``auto_check_in`` a paid one-off service is consumed on the spot
    and a time-based one starts a check-in, in the same write as the sale.

    Raises:
        404: Service or guest not found
        409: Guest already holds a paid purchase of this service
        503: Write failed
    """
    logger.info(
        "sell_request",
        guest_id=request.guest_id,
        service_id=request.service_id,
        status=request.status.value,
        auto_check_in=request.auto_check_in,
    )

    try:
        result = get_purchase_manager().sell(
            guest_id=request.guest_id,
            service_id=request.service_id,
            payment_method=request.payment_method,
            status=request.status,
            auto_check_in=request.auto_check_in,
        )
    except CafeOpsError as e:
        raise to_http_exception(e)
    except ValueError as e:
        raise bad_request(str(e))

    if result.check_in is not None:
        message = "Purchase created and check-in started"
    elif request.auto_check_in and result.purchase.consumed_at is not None:
        message = "Purchase created and consumed"
    else:
        message = "Purchase created successfully"

    return SaleResponse(purchase=result.purchase, check_in=result.check_in, message=message)


@router.get(
    "/purchases/{purchase_id}",
    response_model=PurchaseRecord,
    summary="Get purchase",
)
async def get_purchase(purchase_id: str, actor: UserRecord = Depends(get_actor)) -> PurchaseRecord:
    try:
        purchase = get_purchase_manager().get_purchase(purchase_id)
    except CafeOpsError as e:
        raise to_http_exception(e)

    ensure_owner_or_staff(actor, purchase.guest_id)
    return purchase


@router.get(
    "/guests/{guest_id}/purchases",
    response_model=PurchaseListResponse,
    summary="List a guest's purchases",
)
async def list_guest_purchases(guest_id: str, actor: UserRecord = Depends(get_actor)) -> PurchaseListResponse:
    """Newest first, with lazily expired purchases reported as expired."""
    ensure_owner_or_staff(actor, guest_id)
    purchases = get_purchase_manager().get_guest_purchases(guest_id)
    return PurchaseListResponse(guest_id=guest_id, purchases=purchases, count=len(purchases))


@router.post(
    "/purchases/{purchase_id}/confirm-payment",
    response_model=PurchaseRecord,
    summary="Confirm payment of a pending purchase",
)
async def confirm_payment(purchase_id: str, staff: UserRecord = Depends(require_staff)) -> PurchaseRecord:
    """Move a pending purchase to paid.

    Raises:
        404: Purchase not found
        409: Purchase is not pending
    """
    logger.info("confirm_payment_request", purchase_id=purchase_id)
    try:
        return get_purchase_manager().confirm_payment(purchase_id)
    except CafeOpsError as e:
        raise to_http_exception(e)


@router.post(
    "/purchases/{purchase_id}/expire",
    response_model=PurchaseRecord,
    summary="Expire a paid purchase",
)
async def expire_purchase(purchase_id: str, staff: UserRecord = Depends(require_staff)) -> PurchaseRecord:
    logger.info("expire_purchase_request", purchase_id=purchase_id)
    try:
        return get_purchase_manager().expire(purchase_id)
    except CafeOpsError as e:
        raise to_http_exception(e)


@router.get(
    "/purchases/{purchase_id}/qr.png",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
    summary="Voucher QR image",
)
async def purchase_qr(purchase_id: str, actor: UserRecord = Depends(get_actor)) -> Response:
    try:
        purchase = get_purchase_manager().get_purchase(purchase_id)
    except CafeOpsError as e:
        raise to_http_exception(e)

    ensure_owner_or_staff(actor, purchase.guest_id)
    return Response(content=render_qr_png(purchase.qr_code), media_type="image/png")
