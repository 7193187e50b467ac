"""Redemption engine - QR validation and one-time consumption.

Responsibilities:
- Look up a purchase by its QR token (scanned or typed)
- Classify it for display (eligible, already used, payment pending)
- Redeem it: consume a one-off service or open a check-in session

Only a ``paid`` purchase can be redeemed. The status is re-read and
re-checked at redemption time because validation and redemption are two
separate steps at the front desk.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from cafe_ops.exceptions import (
    ActiveCheckInExistsError,
    PaymentNotCompletedError,
    PurchaseAlreadyUsedError,
    PurchaseNotFoundError,
    StoreWriteError,
)
from cafe_ops.logging_config import get_logger
from cafe_ops.models.check_in import CheckInRecord
from cafe_ops.models.purchase import PurchaseRecord, PurchaseStatus
from cafe_ops.models.service import RedemptionPolicy
from cafe_ops.models.user import UserRecord
from cafe_ops.repositories.check_in_repository import CheckInRepository
from cafe_ops.repositories.document_store import DocumentStore, TxOp, get_document_store
from cafe_ops.repositories.purchase_repository import PurchaseRepository
from cafe_ops.repositories.user_repository import UserRepository
from cafe_ops.services.session_timer import SessionTimer
from cafe_ops.services.time_controller import TimeController, get_time_controller
from cafe_ops.utils.token_generator import normalize_code, validate_qr_token

logger = get_logger(__name__)


class ValidationOutcome(str, Enum):
    ELIGIBLE = "eligible"
    ALREADY_USED = "already_used"
    PAYMENT_PENDING = "payment_pending"


class RedemptionAction(str, Enum):
    CONSUMED = "consumed"  # One-off service used up
    CHECKED_IN = "checked_in"  # Session opened


class ValidationResult(BaseModel):
    """What the front desk sees after a scan."""

    outcome: ValidationOutcome
    purchase: PurchaseRecord
    guest: Optional[UserRecord] = None
    effective_status: PurchaseStatus = Field(..., description="Status after lazy expiry")
    message: str

    @property
    def can_redeem(self) -> bool:
        return self.outcome == ValidationOutcome.ELIGIBLE


class RedemptionResult(BaseModel):
    action: RedemptionAction
    purchase: PurchaseRecord
    check_in: Optional[CheckInRecord] = None
    message: str


def classify(purchase: PurchaseRecord, now_millis: int) -> ValidationOutcome:
    """Classify a purchase for redemption at ``now_millis``."""
    status = purchase.effective_status(now_millis)
    if status.is_terminal:
        return ValidationOutcome.ALREADY_USED
    if status == PurchaseStatus.PENDING:
        return ValidationOutcome.PAYMENT_PENDING
    return ValidationOutcome.ELIGIBLE


class RedemptionEngine:
    """Enforces at-most-once use of a purchase."""

    def __init__(
            self,
            store: Optional[DocumentStore] = None,
            clock: Optional[TimeController] = None,
            session_timer: Optional[SessionTimer] = None,
            policy: Optional[RedemptionPolicy] = None,
    ):
        """Initialize redemption engine.

        Args:
            store: Document store (defaults to global instance)
            clock: Time source (defaults to global instance)
            session_timer: Used to build new sessions (defaults to one on the same store)
            policy: Redemption guards (defaults to the ``redemption`` config section)
        """
        self.store = store if store is not None else get_document_store()
        self.clock = clock or get_time_controller()
        self.session_timer = session_timer or SessionTimer(store=self.store, clock=self.clock)
        if policy is None:
            from cafe_ops.config import get_config

            policy = get_config().redemption_policy
        self.policy = policy
        self.purchases = PurchaseRepository(self.store)
        self.check_ins = CheckInRepository(self.store)
        self.users = UserRepository(self.store)

    def lookup(self, code: str) -> PurchaseRecord:
        """Find the purchase whose QR token equals ``code``.

        Raises:
            PurchaseNotFoundError: If nothing matches
        """
        code = normalize_code(code)
        purchase = self.purchases.find_by_qr_code(code)
        if purchase is None:
            logger.info(
                "qr_lookup_miss",
                qr_code=code,
                well_formed=validate_qr_token(code),
            )
            raise PurchaseNotFoundError(code)
        return purchase

    def validate(self, code: str) -> ValidationResult:
        """Look up and classify a code without changing anything.

        Raises:
            PurchaseNotFoundError: If nothing matches
        """
        purchase = self.lookup(code)
        now = self.clock.now_millis()
        outcome = classify(purchase, now)
        status = purchase.effective_status(now)
        guest = self.users.find_by_id(purchase.guest_id)

        if outcome == ValidationOutcome.ALREADY_USED:
            message = f"This service has already been {status.value}. It cannot be used again."
        elif outcome == ValidationOutcome.PAYMENT_PENDING:
            message = "Payment for this purchase has not been completed"
        elif purchase.service_type.is_time_based:
            message = "Valid. Redeem to start a check-in."
        else:
            message = "Valid. Redeem to consume the service."

        logger.info(
            "qr_validated",
            qr_code=purchase.qr_code,
            purchase_id=purchase.id,
            outcome=outcome.value,
            status=status.value,
        )

        return ValidationResult(
            outcome=outcome,
            purchase=purchase,
            guest=guest,
            effective_status=status,
            message=message,
        )

    def redeem(self, code: str) -> RedemptionResult:
        """Redeem the purchase behind ``code``.

        Raises:
            PurchaseNotFoundError: If nothing matches
            PurchaseAlreadyUsedError: If the purchase is consumed or expired
            PaymentNotCompletedError: If the purchase is pending
            ActiveCheckInExistsError: If the single-session policy is on and a session is open
            StoreWriteError: If the write fails (WriteConflictError on a lost race)
        """
        purchase = self.lookup(code)
        now = self.clock.now_millis()
        self._ensure_redeemable(purchase, now)

        if purchase.service_type.is_time_based:
            return self._open_session(purchase, now)
        return self._consume(purchase, now)

    def _ensure_redeemable(self, purchase: PurchaseRecord, now_millis: int) -> None:
        outcome = classify(purchase, now_millis)
        if outcome == ValidationOutcome.ELIGIBLE:
            return

        status = purchase.effective_status(now_millis)
        logger.warning(
            "redemption_rejected",
            qr_code=purchase.qr_code,
            purchase_id=purchase.id,
            outcome=outcome.value,
            status=status.value,
        )
        if outcome == ValidationOutcome.PAYMENT_PENDING:
            raise PaymentNotCompletedError(purchase.id)
        raise PurchaseAlreadyUsedError(purchase.id, status.value)

    def _paid_guard(self) -> Optional[dict]:
        if self.policy.conditional_writes:
            return {"status": PurchaseStatus.PAID.value}
        return None

    def _submit(self, ops: list[TxOp], purchase: PurchaseRecord) -> None:
        try:
            self.store.transact(ops)
        except StoreWriteError as e:
            logger.error(
                "redemption_write_failed",
                qr_code=purchase.qr_code,
                purchase_id=purchase.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

    def _consume(self, purchase: PurchaseRecord, now_millis: int) -> RedemptionResult:
        self._submit(
            [
                PurchaseRepository.update_op(
                    purchase.id,
                    expect=self._paid_guard(),
                    status=PurchaseStatus.CONSUMED.value,
                    consumedAt=now_millis,
                )
            ],
            purchase,
        )

        purchase.consumed_at = now_millis
        purchase.set_status(PurchaseStatus.CONSUMED, reason="Redeemed at front desk")

        return RedemptionResult(
            action=RedemptionAction.CONSUMED,
            purchase=purchase,
            message="Service consumed successfully",
        )

    def _open_session(self, purchase: PurchaseRecord, now_millis: int) -> RedemptionResult:
        if self.policy.single_active_check_in:
            existing = self.check_ins.find_active_for_purchase(purchase.id)
            if existing is not None:
                logger.warning(
                    "redemption_rejected",
                    qr_code=purchase.qr_code,
                    purchase_id=purchase.id,
                    outcome="active_check_in_exists",
                    check_in_id=existing.id,
                )
                raise ActiveCheckInExistsError(purchase.id, existing.id)

        check_in = self.session_timer.new_check_in(purchase, now_millis)
        ops = [CheckInRepository.create_op(check_in)]
        guard = self._paid_guard()
        if guard is not None:
            ops.append(PurchaseRepository.update_op(purchase.id, expect=guard))

        self._submit(ops, purchase)
        self.session_timer.log_started(check_in)

        return RedemptionResult(
            action=RedemptionAction.CHECKED_IN,
            purchase=purchase,
            check_in=check_in,
            message="Check-in started",
        )


_engine_instance: Optional[RedemptionEngine] = None


def get_redemption_engine() -> RedemptionEngine:
    """Get global redemption engine instance (singleton)."""
    global _engine_instance
    if _engine_instance is None:
        from cafe_ops.services.session_timer import get_session_timer

        _engine_instance = RedemptionEngine(session_timer=get_session_timer())
    return _engine_instance


def reset_redemption_engine() -> None:
    global _engine_instance
    _engine_instance = None
