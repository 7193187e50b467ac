"""Purchase Manager - sells services and drives the purchase lifecycle.

Handles the staff-side sale (with an optional walk-in redemption in the
same transaction), payment confirmation and explicit expiry.
"""

from typing import List, Optional

from pydantic import BaseModel

from cafe_ops.exceptions import (
    DuplicateActivePurchaseError,
    GuestNotFoundError,
    InvalidTransitionError,
    StoreWriteError,
)
from cafe_ops.logging_config import get_logger
from cafe_ops.models.check_in import CheckInRecord
from cafe_ops.models.purchase import PurchaseRecord, PurchaseStatus
from cafe_ops.models.service import ServiceType, TokenConfig, progress_total_for
from cafe_ops.models.user import UserRole
from cafe_ops.repositories.check_in_repository import CheckInRepository
from cafe_ops.repositories.document_store import DocumentStore, TxOp, get_document_store
from cafe_ops.repositories.purchase_repository import PurchaseRepository
from cafe_ops.repositories.service_catalog import ServiceCatalog, get_service_catalog
from cafe_ops.repositories.user_repository import UserRepository
from cafe_ops.services.session_timer import SessionTimer
from cafe_ops.services.time_controller import TimeController, get_time_controller
from cafe_ops.utils.durations import parse_period
from cafe_ops.utils.token_generator import generate_id, generate_payment_reference, generate_qr_token

logger = get_logger(__name__)

# Attempts at drawing a QR token that no stored purchase carries yet
MAX_TOKEN_ATTEMPTS = 5


class SaleResult(BaseModel):
    """A completed sale and its walk-in follow-up, if any."""

    purchase: PurchaseRecord
    check_in: Optional[CheckInRecord] = None


class PurchaseManager:
    """Creates purchases and applies operator-driven status changes.

    Reads return the lazily expired status: a paid purchase whose
    validUntil has passed is reported as expired without a write.
    """

    def __init__(
            self,
            store: Optional[DocumentStore] = None,
            clock: Optional[TimeController] = None,
            catalog: Optional[ServiceCatalog] = None,
            session_timer: Optional[SessionTimer] = None,
            token_settings: Optional[TokenConfig] = None,
    ):
        """Initialize purchase manager.

        Args:
            store: Document store (defaults to global instance)
            clock: Time source (defaults to global instance)
            catalog: Service catalog (defaults to global instance)
            session_timer: Builds walk-in sessions (defaults to one on the same store)
            token_settings: QR/reference prefixes (defaults to the ``tokens`` config section)
        """
        self.store = store if store is not None else get_document_store()
        self.clock = clock or get_time_controller()
        self.catalog = catalog or get_service_catalog()
        self.session_timer = session_timer or SessionTimer(store=self.store, clock=self.clock)
        if token_settings is None:
            from cafe_ops.config import get_config

            token_settings = get_config().token_settings
        self.token_settings = token_settings
        self.purchases = PurchaseRepository(self.store)
        self.users = UserRepository(self.store)

    def _new_qr_code(self, now_millis: int) -> str:
        for _ in range(MAX_TOKEN_ATTEMPTS):
            code = generate_qr_token(prefix=self.token_settings.qr_prefix, timestamp_millis=now_millis)
            if not self.purchases.qr_code_exists(code):
                return code
        raise StoreWriteError("Could not generate a unique QR code, please retry")

    def sell(
            self,
            guest_id: str,
            service_id: str,
            payment_method: Optional[str] = None,
            status: PurchaseStatus = PurchaseStatus.PAID,
            auto_check_in: bool = False,
    ) -> SaleResult:
        """Sell a service to a guest.

        Args:
            guest_id: Buying guest
            service_id: Catalog service
            payment_method: cash, transfer, pos or online
            status: PAID for a settled sale, PENDING while payment is in flight
            auto_check_in: Redeem immediately (walk-in); ignored unless paid

        Returns:
            SaleResult with the stored purchase and any session opened

        Raises:
            ServiceNotFoundError: If the service is unknown or inactive
            GuestNotFoundError: If the guest is unknown or not a guest
            DuplicateActivePurchaseError: If a paid time-based purchase of the service exists
            StoreWriteError: If the write fails
        """
        status = PurchaseStatus(status)
        if status not in (PurchaseStatus.PAID, PurchaseStatus.PENDING):
            raise ValueError(f"A sale must start as paid or pending, not {status.value}")

        service = self.catalog.get_sellable(service_id)

        guest = self.users.find_by_id(guest_id)
        if guest is None or guest.role != UserRole.GUEST:
            raise GuestNotFoundError(guest_id)

        now = self.clock.now_millis()
        if service.type != ServiceType.ONE_OFF:
            existing = self.purchases.find_paid_for_service(guest_id, service_id, now)
            if existing is not None:
                logger.warning(
                    "sale_rejected_duplicate",
                    guest_id=guest_id,
                    service_id=service_id,
                    purchase_id=existing.id,
                )
                raise DuplicateActivePurchaseError(guest_id, service_id, existing.id)

        valid_until = None
        if service.validity_period:
            valid_until = now + parse_period(service.validity_period)

        progress_total = progress_total_for(service.type)
        purchase = PurchaseRecord(
            id=generate_id(),
            guest_id=guest_id,
            service_id=service.id,
            service_name=service.name,
            service_type=service.type,
            amount=service.price,
            payment_reference=generate_payment_reference(
                prefix=self.token_settings.reference_prefix, timestamp_millis=now
            ),
            payment_method=payment_method,
            qr_code=self._new_qr_code(now),
            status=status,
            valid_until=valid_until,
            progress_used=0,
            progress_total=progress_total,
            created_at=now,
        )

        check_in = None
        walk_in = auto_check_in and status == PurchaseStatus.PAID
        if walk_in and service.type == ServiceType.ONE_OFF:
            purchase.status = PurchaseStatus.CONSUMED
            purchase.consumed_at = now
        elif walk_in:
            check_in = self.session_timer.new_check_in(purchase, now)

        ops: List[TxOp] = [PurchaseRepository.create_op(purchase)]
        if check_in is not None:
            ops.append(CheckInRepository.create_op(check_in))

        try:
            self.store.transact(ops)
        except StoreWriteError as e:
            logger.error(
                "sale_write_failed",
                guest_id=guest_id,
                service_id=service_id,
                error=str(e),
            )
            raise

        logger.info(
            "purchase_created",
            purchase_id=purchase.id,
            qr_code=purchase.qr_code,
            payment_reference=purchase.payment_reference,
            guest_id=guest_id,
            service_id=service.id,
            service_type=service.type.value,
            amount=purchase.amount,
            status=purchase.status.value,
            auto_check_in=walk_in,
        )
        if check_in is not None:
            self.session_timer.log_started(check_in)

        return SaleResult(purchase=purchase, check_in=check_in)

    def confirm_payment(self, purchase_id: str) -> PurchaseRecord:
        """Mark a pending purchase as paid.

        Raises:
            PurchaseNotFoundError: If the id is unknown
            InvalidTransitionError: If the purchase is not pending
            StoreWriteError: If the write fails
        """
        return self._transition(
            purchase_id,
            source=PurchaseStatus.PENDING,
            target=PurchaseStatus.PAID,
            action="confirm payment",
            reason="Payment confirmed",
        )

    def expire(self, purchase_id: str) -> PurchaseRecord:
        """Expire a paid purchase.

        Raises:
            PurchaseNotFoundError: If the id is unknown
            InvalidTransitionError: If the purchase is not paid
            StoreWriteError: If the write fails
        """
        return self._transition(
            purchase_id,
            source=PurchaseStatus.PAID,
            target=PurchaseStatus.EXPIRED,
            action="expire",
            reason="Expired by operator",
        )

    def _transition(
            self,
            purchase_id: str,
            source: PurchaseStatus,
            target: PurchaseStatus,
            action: str,
            reason: str,
    ) -> PurchaseRecord:
        purchase = self.purchases.get_by_id(purchase_id)
        if purchase.status != source:
            raise InvalidTransitionError(
                purchase_id, purchase.status.value, action,
                reason=f"Cannot {action}: purchase is {purchase.status.value}, expected {source.value}",
            )

        try:
            self.store.transact(
                [
                    PurchaseRepository.update_op(
                        purchase_id,
                        expect={"status": source.value},
                        status=target.value,
                    )
                ]
            )
        except StoreWriteError as e:
            logger.error(
                "purchase_transition_write_failed",
                purchase_id=purchase_id,
                action=action,
                target=target.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        purchase.set_status(target, reason=reason)
        return purchase

    def _with_effective_status(self, purchase: PurchaseRecord, now_millis: int) -> PurchaseRecord:
        purchase.status = purchase.effective_status(now_millis)
        return purchase

    def get_purchase(self, purchase_id: str) -> PurchaseRecord:
        """Get purchase by id with its effective status.

        Raises:
            PurchaseNotFoundError: If the id is unknown
        """
        purchase = self.purchases.get_by_id(purchase_id)
        return self._with_effective_status(purchase, self.clock.now_millis())

    def get_guest_purchases(self, guest_id: str) -> List[PurchaseRecord]:
        """Guest's purchases, newest first, with effective status."""
        now = self.clock.now_millis()
        return [self._with_effective_status(p, now) for p in self.purchases.get_by_guest(guest_id)]

    def get_all_purchases(self) -> List[PurchaseRecord]:
        now = self.clock.now_millis()
        return [self._with_effective_status(p, now) for p in self.purchases.get_all()]


_purchase_manager: Optional[PurchaseManager] = None


def get_purchase_manager() -> PurchaseManager:
    """Get global purchase manager instance (singleton)."""
    global _purchase_manager
    if _purchase_manager is None:
        from cafe_ops.services.session_timer import get_session_timer

        _purchase_manager = PurchaseManager(session_timer=get_session_timer())
    return _purchase_manager


def reset_purchase_manager() -> None:
    """Reset global purchase manager instance (useful for testing)."""
    global _purchase_manager
    _purchase_manager = None
