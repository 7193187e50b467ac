"""Analytics API.

Implements:
- GET /analytics/summary - Revenue and usage figures (managers and admins)
- GET /dashboard - Home page counts for the signed-in user
"""

from fastapi import APIRouter, Depends, Query

from cafe_ops.api.deps import get_actor, require_staff
from cafe_ops.models import UserRecord
from cafe_ops.services.analytics import (
    DEFAULT_DAYS,
    DEFAULT_MONTHS,
    AnalyticsSummary,
    DashboardCounts,
    get_analytics_service,
)

router = APIRouter(tags=["Analytics"])


@router.get(
    "/analytics/summary",
    response_model=AnalyticsSummary,
    summary="Revenue and usage analytics",
)
async def analytics_summary(
        days: int = Query(DEFAULT_DAYS, ge=1, le=366, description="Daily buckets to return"),
        months: int = Query(DEFAULT_MONTHS, ge=1, le=60, description="Monthly buckets to return"),
        staff: UserRecord = Depends(require_staff),
) -> AnalyticsSummary:
    """Pending purchases are excluded from every revenue figure."""
    return get_analytics_service().summary(days=days, months=months)


@router.get(
    "/dashboard",
    response_model=DashboardCounts,
    response_model_exclude_none=True,
    summary="Dashboard counts",
)
async def dashboard(actor: UserRecord = Depends(get_actor)) -> DashboardCounts:
    return get_analytics_service().dashboard(actor)
