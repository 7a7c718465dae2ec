"""Financial health heuristics: runway, idle cash, inflation."""

from dataclasses import dataclass

NO_BURN_RUNWAY = 999.0
DEFAULT_BUFFER_MONTHS = 3
DEFAULT_INFLATION = 0.05


def calculate_runway(balance: int, avg_monthly_expense: int) -> float:
    """Months the balance lasts at the current burn rate."""
    if avg_monthly_expense <= 0:
        return NO_BURN_RUNWAY
    if balance <= 0:
        return 0.0
    return round(balance / avg_monthly_expense, 1)


def calculate_idle_cash(
    balance: int, avg_monthly_expense: int, buffer_months: int = DEFAULT_BUFFER_MONTHS
) -> int:
    """Cash above the emergency buffer that could be put to work."""
    return max(0, balance - avg_monthly_expense * buffer_months)


def calculate_future_value(present_value: int, years: float, inflation: float = DEFAULT_INFLATION) -> int:
    """Nominal amount needed in ``years`` to match today's purchasing power."""
    return round(present_value * (1 + inflation) ** years)


def runway_status(months: float) -> str:
    if months < 1:
        return "critical"
    if months < 3:
        return "warning"
    if months < 6:
        return "safe"
    return "wealthy"


@dataclass(frozen=True)
class HealthMetrics:
    balance: int
    avg_monthly_expense: int
    runway_months: float
    idle_cash: int
    status: str

    def to_dict(self) -> dict:
        return {
            "balance": self.balance,
            "avg_monthly_expense": self.avg_monthly_expense,
            "runway_months": self.runway_months,
            "idle_cash": self.idle_cash,
            "status": self.status,
        }


def health_metrics(balance: int, monthly_expenses: list[int]) -> HealthMetrics:
    """Health snapshot from the cumulative balance and recent monthly expense totals."""
    avg_expense = round(sum(monthly_expenses) / len(monthly_expenses)) if monthly_expenses else 0
    runway = calculate_runway(balance, avg_expense)
    return HealthMetrics(
        balance=balance,
        avg_monthly_expense=avg_expense,
        runway_months=runway,
        idle_cash=calculate_idle_cash(balance, avg_expense),
        status=runway_status(runway),
    )
