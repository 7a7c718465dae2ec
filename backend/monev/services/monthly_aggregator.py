"""Monthly aggregation: totals, per-category spend against budgets, goal progress.

Everything here is recomputed from transaction records on each call; stored
figures are never trusted.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Iterable, Protocol

from monev.services.periods import in_month, local_date, validate_month


class TransactionRecord(Protocol):
    amount: int
    type: str
    category_id: int | None
    occurred_at: datetime


class BudgetRecord(Protocol):
    id: int
    category_id: int
    amount: int
    month: int
    year: int


class GoalRecord(Protocol):
    target_amount: int
    current_amount: int


class CategoryRecord(Protocol):
    id: int
    name: str
    color: str


@dataclass(frozen=True)
class MonthlyStats:
    income: int
    expense: int

    @property
    def balance(self) -> int:
        return self.income - self.expense

    def to_dict(self) -> dict:
        return {"income": self.income, "expense": self.expense, "balance": self.balance}


@dataclass
class CategorySpend:
    category_id: int | None
    category_name: str | None
    color: str | None = None
    spent: int = 0
    transaction_count: int = 0
    budget_id: int | None = None
    limit: int | None = None

    @property
    def ratio(self) -> float | None:
        """Raw spent/limit, uncapped. None without a positive limit."""
        if self.limit is None or self.limit <= 0:
            return None
        return self.spent / self.limit

    @property
    def percentage(self) -> float | None:
        ratio = self.ratio
        if ratio is None:
            return None
        return round(min(ratio * 100, 100.0), 1)

    @property
    def over_budget(self) -> bool:
        return self.limit is not None and self.spent > self.limit

    @property
    def remaining(self) -> int | None:
        if self.limit is None:
            return None
        return self.limit - self.spent

    def to_dict(self) -> dict:
        return {
            "category_id": self.category_id,
            "category_name": self.category_name,
            "color": self.color,
            "spent": self.spent,
            "transaction_count": self.transaction_count,
            "budget_id": self.budget_id,
            "limit": self.limit,
            "remaining": self.remaining,
            "ratio": self.ratio,
            "percentage": self.percentage,
            "over_budget": self.over_budget,
        }


@dataclass(frozen=True)
class GoalSummary:
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    target_total: int = 0
    saved_total: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "completed": self.completed,
            "in_progress": self.in_progress,
            "target_total": self.target_total,
            "saved_total": self.saved_total,
        }


@dataclass
class MonthlyReport:
    year: int
    month: int
    stats: MonthlyStats
    categories: list[CategorySpend] = field(default_factory=list)
    goals: GoalSummary = field(default_factory=GoalSummary)
    transaction_count: int = 0

    @property
    def over_budget(self) -> list[CategorySpend]:
        return [c for c in self.categories if c.over_budget]

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            **self.stats.to_dict(),
            "transaction_count": self.transaction_count,
            "categories": [c.to_dict() for c in self.categories],
            "goals": self.goals.to_dict(),
            "over_budget_count": len(self.over_budget),
        }


@dataclass(frozen=True)
class DailyRecap:
    day: date
    income: int
    expense: int
    cash_expense: int
    daily_budget: int

    @property
    def saved(self) -> int:
        return self.daily_budget - self.expense


def compute_stats(transactions: Iterable[TransactionRecord]) -> MonthlyStats:
    """Income and expense totals. Absolute values, so sign convention does not matter."""
    income = expense = 0
    for txn in transactions:
        if txn.type == "income":
            income += abs(txn.amount)
        elif txn.type == "expense":
            expense += abs(txn.amount)
    return MonthlyStats(income=income, expense=expense)


def filter_month(
    transactions: Iterable[TransactionRecord], year: int, month: int, tz: tzinfo | None = None
) -> list[TransactionRecord]:
    validate_month(year, month)
    return [t for t in transactions if in_month(t.occurred_at, year, month, tz)]


def category_breakdown(
    transactions: Iterable[TransactionRecord],
    budgets: Iterable[BudgetRecord] = (),
    categories: Iterable[CategoryRecord] = (),
) -> list[CategorySpend]:
    """Expense spend per category, joined with the budgets of the same period.

    Budgeted categories without spending are listed with ``spent == 0``.
    Uncategorized expenses are collected under ``category_id=None``.
    Sorted by spend, largest first.
    """
    names = {c.id: c for c in categories}
    rows: dict[int | None, CategorySpend] = {}

    def row_for(category_id: int | None) -> CategorySpend:
        if category_id not in rows:
            category = names.get(category_id) if category_id is not None else None
            rows[category_id] = CategorySpend(
                category_id=category_id,
                category_name=category.name if category else None,
                color=category.color if category else None,
            )
        return rows[category_id]

    for txn in transactions:
        if txn.type != "expense":
            continue
        row = row_for(txn.category_id)
        row.spent += abs(txn.amount)
        row.transaction_count += 1

    for budget in budgets:
        row = row_for(budget.category_id)
        row.budget_id = budget.id
        row.limit = budget.amount
        if row.category_name is None:
            category = getattr(budget, "category", None)
            if category is not None:
                row.category_name = category.name
                row.color = category.color

    return sorted(rows.values(), key=lambda r: (-r.spent, r.category_name or ""))


def goal_progress(current: int, target: int) -> float:
    """current/target clamped to [0, 1]; a non-positive target counts as reached."""
    if target <= 0:
        return 1.0
    return max(0.0, min(current / target, 1.0))


def summarize_goals(goals: Iterable[GoalRecord]) -> GoalSummary:
    total = completed = target_total = saved_total = 0
    for goal in goals:
        total += 1
        target_total += goal.target_amount
        saved_total += goal.current_amount
        if goal.current_amount >= goal.target_amount:
            completed += 1
    return GoalSummary(
        total=total,
        completed=completed,
        in_progress=total - completed,
        target_total=target_total,
        saved_total=saved_total,
    )


def aggregate_month(
    transactions: Iterable[TransactionRecord],
    year: int,
    month: int,
    *,
    budgets: Iterable[BudgetRecord] = (),
    goals: Iterable[GoalRecord] = (),
    categories: Iterable[CategoryRecord] = (),
    tz: tzinfo | None = None,
) -> MonthlyReport:
    """Aggregate one calendar month (in ``tz``) of transactions.

    Only budgets for the same (month, year) take part in the breakdown.
    Raises ValueError for a month outside 1-12.
    """
    in_period = filter_month(transactions, year, month, tz)
    period_budgets = [b for b in budgets if b.month == month and b.year == year]
    return MonthlyReport(
        year=year,
        month=month,
        stats=compute_stats(in_period),
        categories=category_breakdown(in_period, period_budgets, categories),
        goals=summarize_goals(goals),
        transaction_count=len(in_period),
    )


def balance_growth(current: int, previous: int) -> float:
    """Month-over-month change of balance, in percent."""
    if previous == 0:
        return 0.0 if current == 0 else 100.0
    return round((current - previous) / abs(previous) * 100, 1)


def daily_recap(
    transactions: Iterable[TransactionRecord],
    day: date,
    *,
    monthly_income: int,
    fallback_budget: int,
    tz: tzinfo | None = None,
) -> DailyRecap:
    """Today's totals against a daily budget of monthly income / 30."""
    income = expense = cash_expense = 0
    for txn in transactions:
        if local_date(txn.occurred_at, tz) != day:
            continue
        if txn.type == "income":
            income += abs(txn.amount)
        elif txn.type == "expense":
            expense += abs(txn.amount)
            if getattr(txn, "payment_method", None) == "cash":
                cash_expense += abs(txn.amount)
    daily_budget = monthly_income // 30 if monthly_income > 0 else fallback_budget
    return DailyRecap(
        day=day, income=income, expense=expense, cash_expense=cash_expense, daily_budget=daily_budget
    )
