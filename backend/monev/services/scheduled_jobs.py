"""Jobs triggered by the external scheduler: subscription check and daily recap.

Each job walks every user with a linked Telegram chat. A failure for one user
is logged and reported in that user's result entry; the run continues.
"""

from datetime import datetime
from typing import Awaitable, Callable

import structlog

from monev.config import settings
from monev.services.analytics_service import AnalyticsService
from monev.services.insight_formatter import daily_recap_message, resolve_language, subscription_block
from monev.services.notifier import Notifier
from monev.services.store import FinanceStore

logger = structlog.get_logger()

GoalAdjuster = Callable[[int, float], Awaitable[list[tuple[str, int, int]]]]


def _language(user_settings) -> str:
    return resolve_language(user_settings.language if user_settings else settings.default_language)


async def run_subscription_check(
    store: FinanceStore,
    analytics: AnalyticsService,
    notifier: Notifier,
    months: int | None = None,
) -> list[dict]:
    """Detect recurring charges per linked user and send a report when any are found."""
    months = months or settings.subscription_lookback_months
    results = []
    for user, user_settings in await store.list_notifiable_users():
        entry = {"user_id": user.id, "subscriptions_found": 0, "delivered": False}
        try:
            candidates = await analytics.subscriptions(user.id, months=months)
            entry["subscriptions_found"] = len(candidates)
            if candidates:
                text = subscription_block(candidates, _language(user_settings))
                entry["delivered"] = await notifier.send_message(user.telegram_chat_id, text)
        except Exception as e:
            logger.exception("subscription_check_failed", user_id=user.id)
            entry["error"] = str(e)
        results.append(entry)
    logger.info("subscription_check_done", users=len(results))
    return results


async def run_daily_recap(
    store: FinanceStore,
    analytics: AnalyticsService,
    notifier: Notifier,
    adjust_goals: GoalAdjuster | None = None,
    now: datetime | None = None,
) -> list[dict]:
    """Send the end-of-day recap. On the 1st of the month goal targets follow inflation."""
    now = now or datetime.now(analytics.tz)
    first_of_month = now.astimezone(analytics.tz).day == 1
    results = []
    for user, user_settings in await store.list_notifiable_users():
        if user_settings is not None and not user_settings.daily_recap_enabled:
            continue
        entry = {"user_id": user.id, "delivered": False, "expense": 0}
        try:
            recap, month_stats = await analytics.daily_recap(user.id, now)
            entry["expense"] = recap.expense

            adjustments = []
            if first_of_month and adjust_goals is not None and settings.goal_inflation_adjustment > 0:
                adjustments = await adjust_goals(user.id, settings.goal_inflation_adjustment)
                entry["goals_adjusted"] = len(adjustments)

            text = daily_recap_message(
                recap,
                lang=_language(user_settings),
                month_balance=month_stats.balance,
                idle_cash_threshold=settings.idle_cash_threshold,
                cash_burn_threshold=settings.cash_burn_threshold,
                goal_adjustments=adjustments,
                inflation_rate=settings.goal_inflation_adjustment,
            )
            entry["delivered"] = await notifier.send_message(user.telegram_chat_id, text)
        except Exception as e:
            logger.exception("daily_recap_failed", user_id=user.id)
            entry["error"] = str(e)
        results.append(entry)
    logger.info("daily_recap_done", users=len(results))
    return results
