"""Endpoints for the external scheduler."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from monev.api.deps import get_analytics_service, get_db, get_notifier, get_store, verify_cron_secret
from monev.services.analytics_service import AnalyticsService
from monev.services.goal_service import GoalService
from monev.services.notifier import Notifier
from monev.services.scheduled_jobs import run_daily_recap, run_subscription_check
from monev.services.store import FinanceStore

router = APIRouter(dependencies=[Depends(verify_cron_secret)])


@router.get("/subscription-check")
async def subscription_check(
    store: FinanceStore = Depends(get_store),
    analytics: AnalyticsService = Depends(get_analytics_service),
    notifier: Notifier = Depends(get_notifier),
):
    """Scan every linked user for recurring charges and report them over Telegram."""
    results = await run_subscription_check(store, analytics, notifier)
    return {"ok": True, "results": results}


@router.get("/daily-recap")
async def daily_recap(
    db: AsyncSession = Depends(get_db),
    store: FinanceStore = Depends(get_store),
    analytics: AnalyticsService = Depends(get_analytics_service),
    notifier: Notifier = Depends(get_notifier),
):
    """Send each linked user the end-of-day recap."""
    results = await run_daily_recap(store, analytics, notifier, adjust_goals=GoalService(db).apply_inflation)
    return {"ok": True, "results": results}
