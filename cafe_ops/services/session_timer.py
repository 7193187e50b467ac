"""Session timer - check-in lifecycle and elapsed-time bookkeeping.

Responsibilities:
- Build new running sessions for time-based purchases
- Pause, resume and check out sessions
- Derive active (non-paused) time at any instant
- Advance multi-day pass progress on check-out

States: RUNNING -> PAUSED -> RUNNING ... -> CLOSED (terminal).
"""

from typing import Optional

from pydantic import BaseModel, Field

from cafe_ops.exceptions import InvalidTransitionError, StoreWriteError
from cafe_ops.logging_config import get_logger
from cafe_ops.models.check_in import CheckInRecord, CheckInState, ElapsedSnapshot
from cafe_ops.models.purchase import PurchaseRecord, PurchaseStatus
from cafe_ops.repositories.check_in_repository import CheckInRepository
from cafe_ops.repositories.document_store import DocumentStore, TxOp, get_document_store
from cafe_ops.repositories.purchase_repository import PurchaseRepository
from cafe_ops.services.time_controller import TimeController, get_time_controller
from cafe_ops.state_logger import (
    log_check_in_state_change,
    log_paused_time_change,
    log_progress_change,
)
from cafe_ops.utils.durations import format_elapsed
from cafe_ops.utils.token_generator import generate_id

logger = get_logger(__name__)


def elapsed_millis(check_in: CheckInRecord, now_millis: int) -> int:
    """Active time of a session at ``now_millis``, never negative.

    A paused session is frozen at its pause instant and a closed one at its
    check-out instant; only a running session depends on ``now_millis``.
    """
    if check_in.paused_at is not None:
        end = check_in.paused_at
    elif check_in.is_active:
        end = now_millis
    elif check_in.check_out_time is not None:
        end = check_in.check_out_time
    else:
        return 0

    return max(end - check_in.check_in_time - check_in.total_paused_time, 0)


def elapsed_snapshot(check_in: CheckInRecord, now_millis: int) -> ElapsedSnapshot:
    millis = elapsed_millis(check_in, now_millis)
    return ElapsedSnapshot(
        check_in_id=check_in.id,
        state=check_in.state,
        elapsed_millis=millis,
        elapsed=format_elapsed(millis),
        computed_at=now_millis,
    )


class CheckOutResult(BaseModel):
    """Outcome of a check-out."""

    check_in: CheckInRecord
    purchase: Optional[PurchaseRecord] = None
    progress_advanced: bool = Field(default=False, description="A day-unit was used up")
    elapsed: ElapsedSnapshot


class SessionTimer:
    """Check-in state machine.

    Every transition checks the current state first; a rejected transition
    raises InvalidTransitionError without writing. Writes carry an
    ``expect`` on the fields the decision was based on, so a concurrent
    change surfaces as a WriteConflictError instead of being overwritten.
    """

    def __init__(
            self,
            store: Optional[DocumentStore] = None,
            clock: Optional[TimeController] = None,
    ):
        """Initialize session timer.

        Args:
            store: Document store (defaults to global instance)
            clock: Time source (defaults to global instance)
        """
        self.store = store if store is not None else get_document_store()
        self.clock = clock or get_time_controller()
        self.check_ins = CheckInRepository(self.store)
        self.purchases = PurchaseRepository(self.store)

    def _submit(self, ops: list[TxOp], action: str, check_in_id: str) -> None:
        try:
            self.store.transact(ops)
        except StoreWriteError as e:
            logger.error(
                "check_in_write_failed",
                action=action,
                check_in_id=check_in_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

    def new_check_in(self, purchase: PurchaseRecord, now_millis: Optional[int] = None) -> CheckInRecord:
        """Build (but do not store) a running session for ``purchase``."""
        if now_millis is None:
            now_millis = self.clock.now_millis()
        return CheckInRecord(
            id=generate_id(),
            guest_id=purchase.guest_id,
            purchase_id=purchase.id,
            check_in_time=now_millis,
            total_paused_time=0,
            is_active=True,
            created_at=now_millis,
        )

    def log_started(self, check_in: CheckInRecord) -> None:
        log_check_in_state_change(
            check_in_id=check_in.id,
            purchase_id=check_in.purchase_id,
            old_state=None,
            new_state=CheckInState.RUNNING.value,
            guest_id=check_in.guest_id,
            check_in_time=check_in.check_in_time,
        )

    def pause(self, check_in_id: str) -> CheckInRecord:
        """Freeze the timer.

        Raises:
            CheckInNotFoundError: If the id is unknown
            InvalidTransitionError: If the session is not running
        """
        check_in = self.check_ins.get_by_id(check_in_id)
        if check_in.state != CheckInState.RUNNING:
            raise InvalidTransitionError(
                check_in_id, check_in.state.value, "pause",
                reason=f"Cannot pause a {check_in.state.value} session. Only running sessions can be paused.",
            )

        now = self.clock.now_millis()
        self._submit(
            [
                CheckInRepository.update_op(
                    check_in_id,
                    expect={"isActive": True, "pausedAt": None},
                    pausedAt=now,
                )
            ],
            "pause",
            check_in_id,
        )

        check_in.paused_at = now
        log_check_in_state_change(
            check_in_id=check_in_id,
            purchase_id=check_in.purchase_id,
            old_state=CheckInState.RUNNING.value,
            new_state=CheckInState.PAUSED.value,
            paused_at=now,
        )
        return check_in

    def resume(self, check_in_id: str) -> CheckInRecord:
        """Restart the timer and bank the pause interval.

        Raises:
            CheckInNotFoundError: If the id is unknown
            InvalidTransitionError: If the session is not paused
        """
        check_in = self.check_ins.get_by_id(check_in_id)
        if check_in.state != CheckInState.PAUSED:
            raise InvalidTransitionError(
                check_in_id, check_in.state.value, "resume",
                reason=f"Cannot resume a {check_in.state.value} session. Only paused sessions can be resumed.",
            )

        now = self.clock.now_millis()
        pause_duration = self._open_pause_millis(check_in, now)
        old_total = check_in.total_paused_time
        new_total = old_total + pause_duration

        self._submit(
            [
                CheckInRepository.update_op(
                    check_in_id,
                    expect={"isActive": True, "pausedAt": check_in.paused_at},
                    pausedAt=None,
                    totalPausedTime=new_total,
                )
            ],
            "resume",
            check_in_id,
        )

        check_in.paused_at = None
        check_in.total_paused_time = new_total
        log_paused_time_change(check_in_id, old_total, new_total)
        log_check_in_state_change(
            check_in_id=check_in_id,
            purchase_id=check_in.purchase_id,
            old_state=CheckInState.PAUSED.value,
            new_state=CheckInState.RUNNING.value,
            pause_duration_millis=pause_duration,
        )
        return check_in

    def check_out(self, check_in_id: str) -> CheckOutResult:
        """Close a running or paused session.

        An open pause is banked first. For a multi-day pass that is still
        paid, one day-unit is used up in the same transaction, and the pass
        is consumed when the last unit goes.

        Raises:
            CheckInNotFoundError: If the id is unknown
            InvalidTransitionError: If the session is already closed
        """
        check_in = self.check_ins.get_by_id(check_in_id)
        if check_in.state == CheckInState.CLOSED:
            raise InvalidTransitionError(
                check_in_id, check_in.state.value, "check out",
                reason="Session is already checked out",
            )

        now = self.clock.now_millis()
        old_state = check_in.state
        old_total = check_in.total_paused_time
        new_total = old_total + self._open_pause_millis(check_in, now)

        ops = [
            CheckInRepository.update_op(
                check_in_id,
                expect={"isActive": True, "pausedAt": check_in.paused_at},
                isActive=False,
                checkOutTime=now,
                pausedAt=None,
                totalPausedTime=new_total,
            )
        ]

        purchase = self.purchases.find_by_id(check_in.purchase_id)
        if purchase is None:
            logger.warning("check_out_purchase_missing", check_in_id=check_in_id, purchase_id=check_in.purchase_id)
        progress_update = self._progress_update(purchase, now)
        if progress_update is not None:
            ops.append(progress_update)

        self._submit(ops, "check_out", check_in_id)

        check_in.is_active = False
        check_in.check_out_time = now
        check_in.paused_at = None
        check_in.total_paused_time = new_total
        if new_total != old_total:
            log_paused_time_change(check_in_id, old_total, new_total)
        log_check_in_state_change(
            check_in_id=check_in_id,
            purchase_id=check_in.purchase_id,
            old_state=old_state.value,
            new_state=CheckInState.CLOSED.value,
            check_out_time=now,
            elapsed_millis=elapsed_millis(check_in, now),
        )

        if progress_update is not None:
            self._apply_progress(purchase, progress_update.fields)

        return CheckOutResult(
            check_in=check_in,
            purchase=purchase,
            progress_advanced=progress_update is not None,
            elapsed=elapsed_snapshot(check_in, now),
        )

    def elapsed(self, check_in_id: str) -> ElapsedSnapshot:
        """Active time of a stored session right now."""
        check_in = self.check_ins.get_by_id(check_in_id)
        return elapsed_snapshot(check_in, self.clock.now_millis())

    @staticmethod
    def _open_pause_millis(check_in: CheckInRecord, now_millis: int) -> int:
        """Length of the in-flight pause; zero when there is none."""
        if check_in.paused_at is None:
            return 0
        return max(now_millis - check_in.paused_at, 0)

    def _progress_update(self, purchase: Optional[PurchaseRecord], now_millis: int) -> Optional[TxOp]:
        """Purchase write that accompanies a check-out, if any."""
        if purchase is None:
            return None
        if not purchase.is_multi_day:
            return None
        status = purchase.effective_status(now_millis)
        if status != PurchaseStatus.PAID:
            # Pass already used up or expired; progress must not move past it
            logger.warning(
                "check_out_progress_withheld",
                purchase_id=purchase.id,
                status=status.value,
                progress_used=purchase.progress_used,
                progress_total=purchase.progress_total,
            )
            return None

        used = purchase.progress_used or 0
        total = purchase.progress_total
        new_used = min(used + 1, total)
        fields = {"progressUsed": new_used}
        if new_used >= total:
            fields["status"] = PurchaseStatus.CONSUMED.value
            fields["consumedAt"] = now_millis

        return PurchaseRepository.update_op(
            purchase.id,
            expect={"status": PurchaseStatus.PAID.value, "progressUsed": purchase.progress_used},
            **fields,
        )

    @staticmethod
    def _apply_progress(purchase: PurchaseRecord, fields: dict) -> None:
        old_used = purchase.progress_used or 0
        purchase.progress_used = fields["progressUsed"]
        log_progress_change(
            purchase_id=purchase.id,
            old_used=old_used,
            new_used=purchase.progress_used,
            total=purchase.progress_total,
        )
        if "status" in fields:
            purchase.consumed_at = fields["consumedAt"]
            purchase.set_status(PurchaseStatus.CONSUMED, reason="All day-units used")


_timer_instance: Optional[SessionTimer] = None


def get_session_timer() -> SessionTimer:
    """Get global session timer instance (singleton)."""
    global _timer_instance
    if _timer_instance is None:
        _timer_instance = SessionTimer()
    return _timer_instance


def reset_session_timer() -> None:
    global _timer_instance
    _timer_instance = None
