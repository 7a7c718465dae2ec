"""Analytics API routes: monthly report, stats, dashboard, subscriptions, health, insights."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from monev.api.deps import get_analytics_service, get_current_user
from monev.config import settings
from monev.models.user import User
from monev.schemas.analytics import (
    HealthResponse,
    InsightsResponse,
    MonthlyReportResponse,
    StatsResponse,
    SubscriptionsResponse,
)
from monev.services.analytics_service import AnalyticsService
from monev.services.insight_formatter import subscription_block
from monev.services.recurring_detector import total_monthly_cost

router = APIRouter()

LANG_PATTERN = "^(id|en)$"


def _period(service: AnalyticsService, year: int | None, month: int | None) -> tuple[int, int]:
    today = datetime.now(service.tz).date()
    return (
        year if year is not None else today.year,
        month if month is not None else today.month,
    )


@router.get("/monthly", response_model=MonthlyReportResponse)
async def monthly_report(
    year: int | None = None,
    month: int | None = None,
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Income, expense, balance, per-category spend against budgets and goal summary."""
    year, month = _period(service, year, month)
    report, degraded = await service.monthly_report(current_user.id, year, month)
    return {**report.to_dict(), "degraded": degraded}


@router.get("/stats", response_model=StatsResponse)
async def stats(
    year: int | None = None,
    month: int | None = None,
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Month totals with growth against the previous month."""
    year, month = _period(service, year, month)
    return await service.stats(current_user.id, year, month)


@router.get("/dashboard")
async def dashboard(
    year: int | None = None,
    month: int | None = None,
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Monthly report, growth, portfolio value and recent transactions in one call."""
    year, month = _period(service, year, month)
    return await service.dashboard(current_user.id, year, month)


@router.get("/subscriptions", response_model=SubscriptionsResponse)
async def subscriptions(
    months: int = Query(settings.subscription_lookback_months, ge=1, le=24),
    lang: str | None = Query(None, pattern=LANG_PATTERN),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Recurring charges detected over the trailing ``months`` months."""
    candidates = await service.subscriptions(current_user.id, months=months)
    return {
        "months": months,
        "items": [c.to_dict() for c in candidates],
        "total_monthly_cost": total_monthly_cost(candidates),
        "message": subscription_block(candidates, lang or settings.default_language),
    }


@router.get("/health", response_model=HealthResponse)
async def financial_health(
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Runway, idle cash and status from lifetime balance and recent spending."""
    metrics, degraded = await service.health(current_user.id)
    return {**metrics.to_dict(), "degraded": degraded}


@router.get("/insights", response_model=InsightsResponse)
async def insights(
    year: int | None = None,
    month: int | None = None,
    lang: str | None = Query(None, pattern=LANG_PATTERN),
    narrative: bool = False,
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Formatted insight blocks; ``narrative=true`` adds an AI-written paragraph."""
    year, month = _period(service, year, month)
    return await service.insights(current_user.id, year, month, lang=lang, narrate=narrative)
