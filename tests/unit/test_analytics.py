"""Unit tests for analytics buckets and dashboard counts."""

import pytest

from cafe_ops.models.check_in import CheckInRecord
from cafe_ops.models.purchase import PurchaseStatus
from cafe_ops.models.service import ServiceType
from cafe_ops.services.analytics import (
    AnalyticsService,
    average_session_minutes,
    day_windows,
    month_windows,
    revenue_buckets,
    revenue_by_service_type,
)
from cafe_ops.utils.durations import MILLIS_PER_DAY

from conftest import START_MILLIS

# 2023-11-14 00:00:00 UTC, the day START_MILLIS falls on
DAY_START = 1_699_920_000_000
# 2023-11-01 00:00:00 UTC
MONTH_START = 1_698_796_800_000


@pytest.fixture
def analytics(store, clock, catalog):
    return AnalyticsService(store=store, clock=clock, catalog=catalog, currency="NGN")


def _session(check_in_time, check_out_time=None, paused=0):
    return CheckInRecord(
        id=f"ci-{check_in_time}",
        guest_id="guest-1",
        purchase_id="p-1",
        check_in_time=check_in_time,
        check_out_time=check_out_time,
        total_paused_time=paused,
        is_active=check_out_time is None,
        created_at=check_in_time,
    )


class TestWindows:
    def test_day_windows(self):
        windows = day_windows(START_MILLIS, days=3)

        assert [label for label, _, _ in windows] == ["Nov 12", "Nov 13", "Nov 14"]
        label, start, end = windows[-1]
        assert start == DAY_START
        assert end == DAY_START + MILLIS_PER_DAY
        assert windows[0][2] == windows[1][1]

    def test_month_windows(self):
        windows = month_windows(START_MILLIS, months=2)

        assert [label for label, _, _ in windows] == ["Oct 2023", "Nov 2023"]
        assert windows[-1][1] == MONTH_START
        assert windows[0][2] == MONTH_START

    def test_month_windows_cross_year(self):
        # 2024-01-15 UTC
        windows = month_windows(1_705_276_800_000, months=3)
        assert [label for label, _, _ in windows] == ["Nov 2023", "Dec 2023", "Jan 2024"]


class TestAggregates:
    def test_pending_is_not_revenue(self, make_purchase):
        purchases = [
            make_purchase(amount=1000),
            make_purchase(status=PurchaseStatus.PENDING, amount=700),
            make_purchase(status=PurchaseStatus.CONSUMED, amount=300),
        ]

        buckets = revenue_buckets(purchases, day_windows(START_MILLIS, days=1))

        assert buckets[0].revenue == 1300
        assert buckets[0].purchases == 2

    def test_purchases_outside_windows_ignored(self, make_purchase):
        purchases = [make_purchase(created_at=START_MILLIS - 40 * MILLIS_PER_DAY)]
        buckets = revenue_buckets(purchases, day_windows(START_MILLIS, days=30))
        assert sum(b.revenue for b in buckets) == 0

    def test_revenue_by_service_type(self, make_purchase):
        purchases = [
            make_purchase(ServiceType.WEEKLY, amount=15000),
            make_purchase(ServiceType.WEEKLY, amount=15000),
            make_purchase(ServiceType.ONE_OFF, amount=500),
            make_purchase(ServiceType.DAILY, status=PurchaseStatus.PENDING, amount=2500),
        ]

        assert revenue_by_service_type(purchases) == {"weekly": 30000, "one-off": 500}

    def test_average_session_minutes(self):
        sessions = [
            _session(0, check_out_time=30 * 60_000),
            _session(0, check_out_time=70 * 60_000, paused=10 * 60_000),
            _session(0),
        ]
        assert average_session_minutes(sessions) == 45.0

    def test_average_without_closed_sessions(self):
        assert average_session_minutes([_session(0)]) == 0.0
        assert average_session_minutes([]) == 0.0


class TestSummary:
    def test_summary(self, open_session, analytics, clock, timer, guest, admin, make_purchase):
        make_purchase(ServiceType.ONE_OFF, amount=500)
        make_purchase(ServiceType.DAILY, amount=2500, created_at=START_MILLIS - MILLIS_PER_DAY)
        make_purchase(ServiceType.DAILY, status=PurchaseStatus.PENDING, amount=2500)
        session = open_session(make_purchase(ServiceType.WEEKLY, amount=15000))
        clock.advance_time(minutes=90)
        timer.check_out(session.id)

        summary = analytics.summary(days=7, months=2)

        assert summary.currency == "NGN"
        assert summary.total_revenue == 18000
        assert summary.total_guests == 1
        assert summary.total_check_ins == 1
        assert summary.average_session_minutes == 90.0
        assert len(summary.daily_revenue) == 7
        assert summary.daily_revenue[-1].revenue == 15500
        assert summary.daily_revenue[-2].revenue == 2500
        assert summary.monthly_revenue[-1].revenue == 18000
        assert summary.daily_check_ins[-1].check_ins == 1
        assert summary.generated_at == START_MILLIS + 90 * 60_000

    def test_empty_store(self, analytics):
        summary = analytics.summary()

        assert summary.total_revenue == 0
        assert summary.average_session_minutes == 0.0
        assert len(summary.daily_revenue) == 30
        assert len(summary.monthly_revenue) == 12


class TestDashboard:
    def test_staff_counts(self, open_session, analytics, timer, admin, guest, make_purchase):
        make_purchase(amount=1000)
        make_purchase(status=PurchaseStatus.PENDING, amount=9000)
        open_session(make_purchase(ServiceType.DAILY, amount=2500))

        counts = analytics.dashboard(admin)

        assert counts.active_check_ins == 1
        assert counts.total_guests == 1
        assert counts.services == 5
        assert counts.total_revenue == 3500
        assert counts.my_purchases is None

    def test_guest_counts_own_purchases(self, analytics, clock, guest, make_purchase):
        make_purchase()
        make_purchase(valid_until=START_MILLIS + 1_000)
        make_purchase(status=PurchaseStatus.CONSUMED)
        make_purchase(guest_id="someone-else")
        clock.advance_time(seconds=5)

        counts = analytics.dashboard(guest)

        assert counts.my_purchases == 3
        assert counts.my_active_purchases == 1
        assert counts.total_revenue is None
