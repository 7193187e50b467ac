"""Revenue and usage analytics.

Figures are derived from full collection snapshots on every call. Pending
purchases never count as revenue. Days and months are UTC calendar
buckets ending at the clock's current instant.
"""

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from cafe_ops.models.check_in import CheckInRecord
from cafe_ops.models.purchase import PurchaseRecord, PurchaseStatus
from cafe_ops.models.user import UserRecord
from cafe_ops.repositories.check_in_repository import CheckInRepository
from cafe_ops.repositories.document_store import DocumentStore, get_document_store
from cafe_ops.repositories.purchase_repository import PurchaseRepository
from cafe_ops.repositories.service_catalog import ServiceCatalog, get_service_catalog
from cafe_ops.repositories.user_repository import UserRepository
from cafe_ops.services.time_controller import TimeController, get_time_controller
from cafe_ops.utils.durations import millis_to_minutes

DEFAULT_DAYS = 30
DEFAULT_MONTHS = 12


class RevenueBucket(BaseModel):
    label: str = Field(..., description="Bucket label, e.g. 'Mar 4' or 'Mar 2024'")
    start: int = Field(..., description="Bucket start (Unix millis, inclusive)")
    revenue: float = 0.0
    purchases: int = 0


class CheckInBucket(BaseModel):
    label: str
    start: int
    check_ins: int = 0


class AnalyticsSummary(BaseModel):
    """Everything the analytics page shows."""

    currency: str
    total_revenue: float
    total_guests: int
    total_check_ins: int
    average_session_minutes: float
    daily_revenue: List[RevenueBucket]
    monthly_revenue: List[RevenueBucket]
    daily_check_ins: List[CheckInBucket]
    revenue_by_service_type: Dict[str, float]
    generated_at: int


class DashboardCounts(BaseModel):
    """Home page figures; staff see café-wide numbers, guests see their own."""

    active_check_ins: Optional[int] = None
    total_guests: Optional[int] = None
    services: Optional[int] = None
    total_revenue: Optional[float] = None
    my_purchases: Optional[int] = None
    my_active_purchases: Optional[int] = None


def _to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _day_start(now_millis: int) -> datetime:
    now = datetime.fromtimestamp(now_millis / 1000, tz=timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _month_start(moment: datetime, months_back: int) -> datetime:
    month_index = moment.year * 12 + (moment.month - 1) - months_back
    return datetime(month_index // 12, month_index % 12 + 1, 1, tzinfo=timezone.utc)


def day_windows(now_millis: int, days: int = DEFAULT_DAYS) -> List[tuple]:
    """(label, start, end) for the last ``days`` UTC days, oldest first; end is exclusive."""
    today = _day_start(now_millis)
    windows = []
    for offset in range(days - 1, -1, -1):
        start = today - timedelta(days=offset)
        end = start + timedelta(days=1)
        windows.append((f"{start:%b} {start.day}", _to_millis(start), _to_millis(end)))
    return windows


def month_windows(now_millis: int, months: int = DEFAULT_MONTHS) -> List[tuple]:
    """(label, start, end) for the last ``months`` UTC calendar months, oldest first."""
    today = _day_start(now_millis)
    windows = []
    for offset in range(months - 1, -1, -1):
        start = _month_start(today, offset)
        end = _month_start(today, offset - 1)
        windows.append((f"{start:%b %Y}", _to_millis(start), _to_millis(end)))
    return windows


def counted_purchases(purchases: Iterable[PurchaseRecord]) -> List[PurchaseRecord]:
    return [p for p in purchases if p.status != PurchaseStatus.PENDING]


def revenue_buckets(purchases: Iterable[PurchaseRecord], windows: List[tuple]) -> List[RevenueBucket]:
    purchases = counted_purchases(purchases)
    buckets = []
    for label, start, end in windows:
        in_window = [p for p in purchases if start <= p.created_at < end]
        buckets.append(
            RevenueBucket(
                label=label,
                start=start,
                revenue=sum(p.amount for p in in_window),
                purchases=len(in_window),
            )
        )
    return buckets


def check_in_buckets(check_ins: Iterable[CheckInRecord], windows: List[tuple]) -> List[CheckInBucket]:
    check_ins = list(check_ins)
    return [
        CheckInBucket(
            label=label,
            start=start,
            check_ins=sum(1 for c in check_ins if start <= c.check_in_time < end),
        )
        for label, start, end in windows
    ]


def revenue_by_service_type(purchases: Iterable[PurchaseRecord]) -> Dict[str, float]:
    totals: Dict[str, float] = defaultdict(float)
    for purchase in counted_purchases(purchases):
        totals[purchase.service_type.value] += purchase.amount
    return dict(totals)


def average_session_minutes(check_ins: Iterable[CheckInRecord]) -> float:
    """Mean active minutes over checked-out sessions; 0 when there are none."""
    closed = [c for c in check_ins if c.check_out_time is not None]
    if not closed:
        return 0.0
    total = sum(
        max(c.check_out_time - c.check_in_time - c.total_paused_time, 0)
        for c in closed
    )
    return millis_to_minutes(total) / len(closed)


class AnalyticsService:
    """Reads the store and builds analytics and dashboard figures."""

    def __init__(
            self,
            store: Optional[DocumentStore] = None,
            clock: Optional[TimeController] = None,
            catalog: Optional[ServiceCatalog] = None,
            currency: Optional[str] = None,
    ):
        self.store = store if store is not None else get_document_store()
        self.clock = clock or get_time_controller()
        self.catalog = catalog or get_service_catalog()
        if currency is None:
            from cafe_ops.config import get_config

            currency = get_config().company.currency
        self.currency = currency
        self.purchases = PurchaseRepository(self.store)
        self.check_ins = CheckInRepository(self.store)
        self.users = UserRepository(self.store)

    def summary(self, days: int = DEFAULT_DAYS, months: int = DEFAULT_MONTHS) -> AnalyticsSummary:
        now = self.clock.now_millis()
        purchases = self.purchases.get_all()
        check_ins = self.check_ins.get_all()
        days_window = day_windows(now, days)

        return AnalyticsSummary(
            currency=self.currency,
            total_revenue=sum(p.amount for p in counted_purchases(purchases)),
            total_guests=len(self.users.get_guests()),
            total_check_ins=len(check_ins),
            average_session_minutes=round(average_session_minutes(check_ins), 2),
            daily_revenue=revenue_buckets(purchases, days_window),
            monthly_revenue=revenue_buckets(purchases, month_windows(now, months)),
            daily_check_ins=check_in_buckets(check_ins, days_window),
            revenue_by_service_type=revenue_by_service_type(purchases),
            generated_at=now,
        )

    def dashboard(self, user: UserRecord) -> DashboardCounts:
        if user.is_staff:
            purchases = self.purchases.get_all()
            return DashboardCounts(
                active_check_ins=len(self.check_ins.get_active()),
                total_guests=len(self.users.get_guests()),
                services=len(self.catalog.get_all(public_only=True)),
                total_revenue=sum(p.amount for p in counted_purchases(purchases)),
            )

        now = self.clock.now_millis()
        mine = self.purchases.get_by_guest(user.id)
        return DashboardCounts(
            my_purchases=len(mine),
            my_active_purchases=sum(1 for p in mine if p.effective_status(now) == PurchaseStatus.PAID),
        )


_analytics_instance: Optional[AnalyticsService] = None


def get_analytics_service() -> AnalyticsService:
    global _analytics_instance
    if _analytics_instance is None:
        _analytics_instance = AnalyticsService()
    return _analytics_instance


def reset_analytics_service() -> None:
    global _analytics_instance
    _analytics_instance = None
