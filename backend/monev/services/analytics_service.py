"""Analytics service: concurrent store reads composed with the pure aggregation core.

Independent reads fan out with ``asyncio.gather``. A failed read is logged,
replaced by an empty result and reported back in ``degraded`` so the caller
still gets a partial answer.
"""

import asyncio
from datetime import date, datetime, time
from typing import Any, Awaitable

import structlog

from monev.config import settings
from monev.core.exceptions import ValidationError
from monev.services.financial_advising import HealthMetrics, health_metrics
from monev.services.insight_formatter import build_insights, render, resolve_language
from monev.services.monthly_aggregator import (
    DailyRecap,
    MonthlyReport,
    MonthlyStats,
    aggregate_month,
    balance_growth,
    compute_stats,
    daily_recap,
    filter_month,
)
from monev.services.narrator import InsightNarrator
from monev.services.periods import app_timezone, month_bounds, months_ago, shift_month, validate_month
from monev.services.recurring_detector import RecurringChargeCandidate, detect_recurring_charges
from monev.services.store import FinanceStore

logger = structlog.get_logger()

HEALTH_WINDOW_MONTHS = 4


class AnalyticsService:
    def __init__(self, store: FinanceStore, narrator: InsightNarrator | None = None):
        self.store = store
        self.narrator = narrator
        self.tz = app_timezone()

    async def _gather(self, reads: dict[str, tuple[Awaitable, Any]]) -> tuple[dict[str, Any], list[str]]:
        """Run reads concurrently; failed ones fall back to their default."""
        names = list(reads)
        results = await asyncio.gather(*(reads[name][0] for name in names), return_exceptions=True)
        values: dict[str, Any] = {}
        degraded: list[str] = []
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.warning("analytics_read_failed", part=name, error=str(result))
                values[name] = reads[name][1]
                degraded.append(name)
            elif isinstance(result, BaseException):
                raise result
            else:
                values[name] = result
        return values, degraded

    def _check_month(self, year: int, month: int) -> None:
        try:
            validate_month(year, month)
        except ValueError as e:
            raise ValidationError(str(e)) from e

    async def monthly_report(self, user_id: int, year: int, month: int) -> tuple[MonthlyReport, list[str]]:
        self._check_month(year, month)
        start, end = month_bounds(year, month, self.tz)
        values, degraded = await self._gather({
            "transactions": (self.store.list_transactions(user_id, start, end), []),
            "budgets": (self.store.list_budgets(user_id, month, year), []),
            "goals": (self.store.list_goals(user_id), []),
            "categories": (self.store.list_categories(user_id), []),
        })
        report = aggregate_month(
            values["transactions"],
            year,
            month,
            budgets=values["budgets"],
            goals=values["goals"],
            categories=values["categories"],
            tz=self.tz,
        )
        logger.info(
            "monthly_report_built",
            user_id=user_id,
            year=year,
            month=month,
            transactions=report.transaction_count,
            degraded=degraded,
        )
        return report, degraded

    async def stats(self, user_id: int, year: int, month: int) -> dict:
        """Month totals with month-over-month balance growth and portfolio value."""
        self._check_month(year, month)
        prev_year, prev_month = shift_month(year, month, -1)
        start, end = month_bounds(year, month, self.tz)
        prev_start, prev_end = month_bounds(prev_year, prev_month, self.tz)
        values, degraded = await self._gather({
            "current": (self.store.list_transactions(user_id, start, end), []),
            "previous": (self.store.list_transactions(user_id, prev_start, prev_end), []),
            "investments": (self.store.list_investments(user_id), []),
        })
        current = compute_stats(filter_month(values["current"], year, month, self.tz))
        previous = compute_stats(filter_month(values["previous"], prev_year, prev_month, self.tz))
        investment_value = _portfolio_value(values["investments"])
        return {
            "year": year,
            "month": month,
            **current.to_dict(),
            "previous_balance": previous.balance,
            "growth": balance_growth(current.balance, previous.balance),
            "investment_value": investment_value,
            "degraded": degraded,
        }

    async def dashboard(self, user_id: int, year: int, month: int) -> dict:
        """Monthly report plus growth, portfolio value and the latest transactions."""
        self._check_month(year, month)
        prev_year, prev_month = shift_month(year, month, -1)
        prev_start, prev_end = month_bounds(prev_year, prev_month, self.tz)
        (report, report_degraded), (values, extra_degraded) = await asyncio.gather(
            self.monthly_report(user_id, year, month),
            self._gather({
                "previous": (self.store.list_transactions(user_id, prev_start, prev_end), []),
                "investments": (self.store.list_investments(user_id), []),
                "recent": (self.store.list_recent_transactions(user_id, 5), []),
            }),
        )
        previous = compute_stats(filter_month(values["previous"], prev_year, prev_month, self.tz))
        return {
            **report.to_dict(),
            "growth": balance_growth(report.stats.balance, previous.balance),
            "investment_value": _portfolio_value(values["investments"]),
            "recent_transactions": [_transaction_summary(t) for t in values["recent"]],
            "degraded": sorted(set(report_degraded) | set(extra_degraded)),
        }

    async def subscriptions(
        self, user_id: int, today: date | None = None, months: int | None = None
    ) -> list[RecurringChargeCandidate]:
        """Recurring charges over the trailing lookback window ending now."""
        months = months or settings.subscription_lookback_months
        today = today or datetime.now(self.tz).date()
        start = datetime.combine(months_ago(today, months), time.min, tzinfo=self.tz)
        transactions = await self.store.list_transactions(user_id, start, None)
        candidates = detect_recurring_charges(
            transactions, tolerance=settings.subscription_amount_tolerance, tz=self.tz
        )
        logger.info("subscriptions_detected", user_id=user_id, months=months, found=len(candidates))
        return candidates

    async def health(self, user_id: int, today: date | None = None) -> tuple[HealthMetrics, list[str]]:
        """Runway and idle cash from the balance up to the end of this month and its recent spending."""
        today = today or datetime.now(self.tz).date()
        first_year, first_month = shift_month(today.year, today.month, -(HEALTH_WINDOW_MONTHS - 1))
        start, _ = month_bounds(first_year, first_month, self.tz)
        _, end = month_bounds(today.year, today.month, self.tz)
        values, degraded = await self._gather({
            "totals": (self.store.totals_by_type(user_id, end), {}),
            "window": (self.store.list_transactions(user_id, start, end), []),
        })
        balance = values["totals"].get("income", 0) - values["totals"].get("expense", 0)
        monthly_expenses = []
        for offset in range(HEALTH_WINDOW_MONTHS):
            year, month = shift_month(first_year, first_month, offset)
            monthly_expenses.append(compute_stats(filter_month(values["window"], year, month, self.tz)).expense)
        return health_metrics(balance, monthly_expenses), degraded

    async def insights(
        self, user_id: int, year: int, month: int, lang: str | None = None, narrate: bool = False
    ) -> dict:
        """Formatted insight blocks for a month, plus an optional AI narrative."""
        self._check_month(year, month)
        lang = resolve_language(lang or settings.default_language)
        first_year, first_month = shift_month(year, month, -(settings.subscription_lookback_months - 1))
        window_start, _ = month_bounds(first_year, first_month, self.tz)
        _, month_end = month_bounds(year, month, self.tz)

        (report, report_degraded), (health, health_degraded), window = await asyncio.gather(
            self.monthly_report(user_id, year, month),
            self.health(user_id, date(year, month, 1)),
            self._gather({"subscriptions": (self.store.list_transactions(user_id, window_start, month_end), [])}),
        )
        window_values, window_degraded = window
        candidates = detect_recurring_charges(
            window_values["subscriptions"], tolerance=settings.subscription_amount_tolerance, tz=self.tz
        )
        blocks = build_insights(
            report.stats,
            candidates,
            year=year,
            month=month,
            lang=lang,
            categories=report.categories,
            health=health,
        )
        narrative = None
        if narrate and self.narrator is not None:
            narrative = await self.narrator.narrate(report, health, lang) or None
        return {
            "year": year,
            "month": month,
            "language": lang,
            "blocks": blocks,
            "text": render(blocks),
            "narrative": narrative,
            "degraded": sorted(set(report_degraded) | set(health_degraded) | set(window_degraded)),
        }

    async def daily_recap(self, user_id: int, now: datetime | None = None) -> tuple[DailyRecap, MonthlyStats]:
        """Today's recap and the month-to-date totals it is measured against."""
        now = now or datetime.now(self.tz)
        today = now.astimezone(self.tz).date()
        start, end = month_bounds(today.year, today.month, self.tz)
        transactions = await self.store.list_transactions(user_id, start, end)
        month_stats = compute_stats(filter_month(transactions, today.year, today.month, self.tz))
        recap = daily_recap(
            transactions,
            today,
            monthly_income=month_stats.income,
            fallback_budget=settings.daily_budget_fallback,
            tz=self.tz,
        )
        return recap, month_stats


def _transaction_summary(txn) -> dict:
    return {
        "id": txn.id,
        "amount": txn.amount,
        "description": txn.description,
        "merchant_name": txn.merchant_name,
        "category_id": txn.category_id,
        "type": txn.type,
        "occurred_at": txn.occurred_at.isoformat(),
    }


def _portfolio_value(investments) -> int:
    return sum(round(i.quantity * i.current_price) for i in investments)
