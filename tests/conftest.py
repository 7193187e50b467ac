"""Shared fixtures: a fresh store, a frozen clock and a small catalog per test."""

from unittest.mock import MagicMock

import pytest

from cafe_ops.models.purchase import PurchaseRecord, PurchaseStatus
from cafe_ops.models.service import (
    RedemptionPolicy,
    ServiceDefinition,
    ServiceType,
    TokenConfig,
    progress_total_for,
)
from cafe_ops.models.user import UserRecord, UserRole
from cafe_ops.repositories.check_in_repository import CheckInRepository
from cafe_ops.repositories.document_store import DocumentStore
from cafe_ops.repositories.purchase_repository import PurchaseRepository
from cafe_ops.repositories.service_catalog import ServiceCatalog
from cafe_ops.repositories.user_repository import UserRepository
from cafe_ops.services.purchase_manager import PurchaseManager
from cafe_ops.services.redemption_engine import RedemptionEngine
from cafe_ops.services.session_timer import SessionTimer
from cafe_ops.services.time_controller import TimeController
from cafe_ops.utils.token_generator import generate_id, generate_payment_reference, generate_qr_token

START_MILLIS = 1_700_000_000_000


@pytest.fixture
def clock():
    """Frozen clock; time only moves through advance_time."""
    return TimeController(frozen=True, start_time_millis=START_MILLIS)


@pytest.fixture
def store():
    store = DocumentStore()
    yield store
    store.clear()


@pytest.fixture
def catalog():
    config = MagicMock()
    config.services = [
        ServiceDefinition(id="print", name="Printing", price=500, type=ServiceType.ONE_OFF),
        ServiceDefinition(id="day", name="Day Pass", price=2500, type=ServiceType.DAILY, validity_period="P7D"),
        ServiceDefinition(id="game", name="Gaming 2h", price=3000, type=ServiceType.FIXED_TIME, duration=120),
        ServiceDefinition(id="week", name="Weekly Pass", price=15000, type=ServiceType.WEEKLY, validity_period="P30D"),
        ServiceDefinition(id="month", name="Monthly Pass", price=50000, type=ServiceType.MONTHLY),
        ServiceDefinition(id="retired", name="Old Pass", price=100, type=ServiceType.DAILY, is_active=False),
    ]
    return ServiceCatalog(config=config)


def _add_user(store, user_id, role, **extra):
    user = UserRecord(
        id=user_id,
        email=f"{user_id}@example.com",
        name=user_id.title(),
        role=role,
        created_at=START_MILLIS,
        updated_at=START_MILLIS,
        **extra,
    )
    UserRepository(store).add(user)
    return user


@pytest.fixture
def guest(store):
    return _add_user(store, "guest-1", UserRole.GUEST)


@pytest.fixture
def admin(store):
    return _add_user(store, "admin-1", UserRole.ADMIN)


@pytest.fixture
def timer(store, clock):
    return SessionTimer(store=store, clock=clock)


@pytest.fixture
def engine(store, clock, timer):
    return RedemptionEngine(store=store, clock=clock, session_timer=timer, policy=RedemptionPolicy())


@pytest.fixture
def manager(store, clock, catalog, timer):
    return PurchaseManager(
        store=store,
        clock=clock,
        catalog=catalog,
        session_timer=timer,
        token_settings=TokenConfig(),
    )


@pytest.fixture
def make_purchase(store, clock):
    """Store a purchase directly, bypassing the sale rules."""

    def _make(
            service_type=ServiceType.DAILY,
            status=PurchaseStatus.PAID,
            guest_id="guest-1",
            valid_until=None,
            progress_used=0,
            created_at=None,
            amount=1000,
    ):
        service_type = ServiceType(service_type)
        now = clock.now_millis() if created_at is None else created_at
        purchase = PurchaseRecord(
            id=generate_id(),
            guest_id=guest_id,
            service_id=f"svc-{service_type.value}",
            service_name=f"Test {service_type.value}",
            service_type=service_type,
            amount=amount,
            payment_reference=generate_payment_reference(prefix="TEST", timestamp_millis=now),
            payment_method="cash",
            qr_code=generate_qr_token(prefix="TEST", timestamp_millis=now),
            status=status,
            valid_until=valid_until,
            progress_used=progress_used,
            progress_total=progress_total_for(service_type),
            created_at=now,
        )
        store.transact([PurchaseRepository.create_op(purchase)])
        return purchase

    return _make


@pytest.fixture
def open_session(store, timer):
    """Store a running session for ``purchase``, bypassing redemption rules."""

    def _open(purchase):
        check_in = timer.new_check_in(purchase)
        store.transact([CheckInRepository.create_op(check_in)])
        return check_in

    return _open
