"""Analytics schemas."""

from pydantic import BaseModel


class CategorySpendItem(BaseModel):
    category_id: int | None
    category_name: str | None
    color: str | None = None
    spent: int
    transaction_count: int
    budget_id: int | None = None
    limit: int | None = None
    remaining: int | None = None
    ratio: float | None = None
    percentage: float | None = None
    over_budget: bool = False


class GoalSummaryItem(BaseModel):
    total: int
    completed: int
    in_progress: int
    target_total: int = 0
    saved_total: int = 0


class MonthlyReportResponse(BaseModel):
    year: int
    month: int
    income: int
    expense: int
    balance: int
    transaction_count: int
    categories: list[CategorySpendItem]
    goals: GoalSummaryItem
    over_budget_count: int
    degraded: list[str] = []


class StatsResponse(BaseModel):
    year: int
    month: int
    income: int
    expense: int
    balance: int
    previous_balance: int
    growth: float
    investment_value: int = 0
    degraded: list[str] = []


class SubscriptionItem(BaseModel):
    merchant: str
    amount: int
    frequency: int
    last_date: str
    cadence: str
    monthly_cost: int


class SubscriptionsResponse(BaseModel):
    months: int
    items: list[SubscriptionItem]
    total_monthly_cost: int
    message: str


class HealthResponse(BaseModel):
    balance: int
    avg_monthly_expense: int
    runway_months: float
    idle_cash: int
    status: str
    degraded: list[str] = []


class InsightsResponse(BaseModel):
    year: int
    month: int
    language: str
    blocks: list[str]
    text: str
    narrative: str | None = None
    degraded: list[str] = []
