"""Unit tests for QR validation and redemption."""

from unittest.mock import patch

import pytest

from cafe_ops.exceptions import (
    ActiveCheckInExistsError,
    PaymentNotCompletedError,
    PurchaseAlreadyUsedError,
    PurchaseNotFoundError,
    StoreWriteError,
    WriteConflictError,
)
from cafe_ops.models.check_in import CheckInState
from cafe_ops.models.purchase import PurchaseStatus
from cafe_ops.models.service import RedemptionPolicy, ServiceType
from cafe_ops.repositories.document_store import CHECK_INS, PURCHASES
from cafe_ops.services.redemption_engine import (
    RedemptionAction,
    RedemptionEngine,
    ValidationOutcome,
    classify,
)

from conftest import START_MILLIS


class TestLookup:
    def test_exact_match(self, engine, make_purchase):
        purchase = make_purchase()
        assert engine.lookup(purchase.qr_code).id == purchase.id

    def test_surrounding_whitespace_ignored(self, engine, make_purchase):
        purchase = make_purchase()
        assert engine.lookup(f"  {purchase.qr_code}\n").id == purchase.id

    def test_partial_code_not_found(self, engine, make_purchase):
        purchase = make_purchase()
        with pytest.raises(PurchaseNotFoundError):
            engine.lookup(purchase.qr_code[:-1])

    @pytest.mark.parametrize("code", ["", "   ", None, "CAFEOS-0000000000000-nothere"])
    def test_unknown_or_empty(self, engine, code):
        with pytest.raises(PurchaseNotFoundError) as exc_info:
            engine.lookup(code)
        assert "no matching purchase found" in str(exc_info.value)


class TestValidate:
    def test_paid_is_eligible(self, engine, guest, make_purchase):
        purchase = make_purchase(ServiceType.DAILY)

        result = engine.validate(purchase.qr_code)

        assert result.outcome == ValidationOutcome.ELIGIBLE
        assert result.can_redeem
        assert result.guest.id == guest.id
        assert result.purchase.id == purchase.id

    def test_pending(self, engine, make_purchase):
        purchase = make_purchase(status=PurchaseStatus.PENDING)
        assert engine.validate(purchase.qr_code).outcome == ValidationOutcome.PAYMENT_PENDING

    @pytest.mark.parametrize("status", [PurchaseStatus.CONSUMED, PurchaseStatus.EXPIRED])
    def test_terminal_is_already_used(self, engine, make_purchase, status):
        purchase = make_purchase(status=status)

        result = engine.validate(purchase.qr_code)

        assert result.outcome == ValidationOutcome.ALREADY_USED
        assert not result.can_redeem

    def test_lazily_expired_is_already_used(self, engine, clock, store, make_purchase):
        purchase = make_purchase(valid_until=START_MILLIS + 1_000)
        clock.advance_time(seconds=2)

        result = engine.validate(purchase.qr_code)

        assert result.outcome == ValidationOutcome.ALREADY_USED
        assert result.effective_status == PurchaseStatus.EXPIRED
        # Expiry is never written back
        assert store.get(PURCHASES, purchase.id)["status"] == "paid"

    def test_unknown_guest(self, engine, make_purchase):
        purchase = make_purchase(guest_id="nobody")
        assert engine.validate(purchase.qr_code).guest is None

    def test_validate_does_not_write(self, engine, store, make_purchase):
        purchase = make_purchase(ServiceType.ONE_OFF)
        before = store.get(PURCHASES, purchase.id)

        engine.validate(purchase.qr_code)

        assert store.get(PURCHASES, purchase.id) == before
        assert store.count(CHECK_INS) == 0

    def test_classify_at_deadline_is_still_paid(self, make_purchase):
        purchase = make_purchase(valid_until=START_MILLIS)
        assert classify(purchase, START_MILLIS) == ValidationOutcome.ELIGIBLE
        assert classify(purchase, START_MILLIS + 1) == ValidationOutcome.ALREADY_USED


class TestRedeem:
    def test_one_off_consumed(self, engine, clock, store, make_purchase):
        purchase = make_purchase(ServiceType.ONE_OFF)
        clock.advance_time(minutes=1)

        result = engine.redeem(purchase.qr_code)

        assert result.action == RedemptionAction.CONSUMED
        assert result.check_in is None
        assert result.purchase.status == PurchaseStatus.CONSUMED
        document = store.get(PURCHASES, purchase.id)
        assert document["status"] == "consumed"
        assert document["consumedAt"] == START_MILLIS + 60_000

    def test_double_redeem_one_off(self, engine, store, make_purchase):
        purchase = make_purchase(ServiceType.ONE_OFF)

        engine.redeem(purchase.qr_code)
        consumed = store.get(PURCHASES, purchase.id)
        with pytest.raises(PurchaseAlreadyUsedError):
            engine.redeem(purchase.qr_code)

        assert store.get(PURCHASES, purchase.id) == consumed

    @pytest.mark.parametrize(
        "service_type",
        [ServiceType.DAILY, ServiceType.WEEKLY, ServiceType.MONTHLY, ServiceType.FIXED_TIME],
    )
    def test_time_based_opens_session(self, engine, store, make_purchase, service_type):
        purchase = make_purchase(service_type)

        result = engine.redeem(purchase.qr_code)

        assert result.action == RedemptionAction.CHECKED_IN
        assert result.check_in.state == CheckInState.RUNNING
        assert result.check_in.purchase_id == purchase.id
        assert store.get(CHECK_INS, result.check_in.id)["isActive"] is True
        assert store.get(PURCHASES, purchase.id)["status"] == "paid"

    def test_pending_rejected_without_write(self, engine, store, make_purchase):
        purchase = make_purchase(ServiceType.ONE_OFF, status=PurchaseStatus.PENDING)
        before = store.get(PURCHASES, purchase.id)

        with pytest.raises(PaymentNotCompletedError):
            engine.redeem(purchase.qr_code)

        assert store.get(PURCHASES, purchase.id) == before

    def test_expired_rejected(self, engine, clock, store, make_purchase):
        purchase = make_purchase(ServiceType.DAILY, valid_until=START_MILLIS + 1_000)
        clock.advance_time(days=1)

        with pytest.raises(PurchaseAlreadyUsedError) as exc_info:
            engine.redeem(purchase.qr_code)

        assert exc_info.value.status == "expired"
        assert store.count(CHECK_INS) == 0

    def test_second_session_allowed_by_default(self, engine, make_purchase):
        purchase = make_purchase(ServiceType.DAILY)

        first = engine.redeem(purchase.qr_code)
        second = engine.redeem(purchase.qr_code)

        assert first.check_in.id != second.check_in.id
        assert len(engine.check_ins.get_active()) == 2

    def test_single_active_check_in_policy(self, store, clock, timer, make_purchase):
        engine = RedemptionEngine(
            store=store,
            clock=clock,
            session_timer=timer,
            policy=RedemptionPolicy(single_active_check_in=True),
        )
        purchase = make_purchase(ServiceType.DAILY)
        first = engine.redeem(purchase.qr_code)

        with pytest.raises(ActiveCheckInExistsError):
            engine.redeem(purchase.qr_code)

        # A closed session no longer blocks
        timer.check_out(first.check_in.id)
        assert engine.redeem(purchase.qr_code).action == RedemptionAction.CHECKED_IN

    def test_store_failure_leaves_purchase_paid(self, engine, store, make_purchase):
        purchase = make_purchase(ServiceType.ONE_OFF)
        store.inject_write_failures(1)

        with pytest.raises(StoreWriteError):
            engine.redeem(purchase.qr_code)

        assert store.get(PURCHASES, purchase.id)["status"] == "paid"
        assert engine.redeem(purchase.qr_code).action == RedemptionAction.CONSUMED


class TestConditionalWrites:
    """A redemption that read a stale 'paid' status loses the race."""

    def test_lost_race_conflicts(self, engine, store, make_purchase):
        purchase = make_purchase(ServiceType.ONE_OFF)
        stale = engine.lookup(purchase.qr_code)
        engine.redeem(purchase.qr_code)

        with patch.object(engine.purchases, "find_by_qr_code", return_value=stale):
            with pytest.raises(WriteConflictError):
                engine.redeem(purchase.qr_code)

    def test_lost_race_for_session_conflicts(self, engine, store, make_purchase):
        purchase = make_purchase(ServiceType.DAILY)
        stale = engine.lookup(purchase.qr_code)
        store.transact([engine.purchases.update_op(purchase.id, status="expired")])

        with patch.object(engine.purchases, "find_by_qr_code", return_value=stale):
            with pytest.raises(WriteConflictError):
                engine.redeem(purchase.qr_code)

        # All-or-nothing: the session was not created either
        assert store.count(CHECK_INS) == 0

    def test_unconditional_writes_do_not_check(self, store, clock, timer, make_purchase):
        engine = RedemptionEngine(
            store=store,
            clock=clock,
            session_timer=timer,
            policy=RedemptionPolicy(conditional_writes=False),
        )
        purchase = make_purchase(ServiceType.ONE_OFF)
        stale = engine.lookup(purchase.qr_code)
        engine.redeem(purchase.qr_code)

        with patch.object(engine.purchases, "find_by_qr_code", return_value=stale):
            result = engine.redeem(purchase.qr_code)

        assert result.action == RedemptionAction.CONSUMED
