"""Budget management service. Spend is always recomputed from transactions."""

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from monev.core.exceptions import AlreadyExistsError, NotFoundError, ValidationError
from monev.models.budget import Budget
from monev.models.category import Category
from monev.models.transaction import Transaction
from monev.models.user import User
from monev.schemas.budget import BudgetCreate, BudgetUpdate
from monev.services.monthly_aggregator import CategorySpend, category_breakdown, filter_month
from monev.services.periods import app_timezone, month_bounds

logger = structlog.get_logger()


def _as_dict(budget: Budget, row: CategorySpend | None) -> dict:
    spent = row.spent if row else 0
    percentage = row.percentage if row else (0.0 if budget.amount > 0 else None)
    return {
        "id": budget.id,
        "category_id": budget.category_id,
        "category_name": budget.category.name if budget.category else None,
        "amount": budget.amount,
        "month": budget.month,
        "year": budget.year,
        "spent": spent,
        "remaining": budget.amount - spent,
        "percentage": percentage,
        "over_budget": spent > budget.amount,
    }


class BudgetService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_budgets(self, user: User, month: int, year: int) -> list[dict]:
        """Budgets of a period, each with spend recomputed from that month's expenses."""
        budgets = list((await self.db.execute(
            select(Budget)
            .where(Budget.user_id == user.id, Budget.month == month, Budget.year == year)
            .order_by(Budget.id)
        )).scalars().unique().all())
        spend = await self._spend_rows(user, month, year, budgets)
        return [_as_dict(b, spend.get(b.category_id)) for b in budgets]

    async def create_budget(self, data: BudgetCreate, user: User) -> dict:
        category = await self.db.get(Category, data.category_id)
        if not category or not (category.is_system or category.user_id == user.id):
            raise ValidationError(f"Unknown category: {data.category_id}")

        existing = await self.db.execute(
            select(Budget.id).where(
                Budget.user_id == user.id,
                Budget.category_id == data.category_id,
                Budget.month == data.month,
                Budget.year == data.year,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise AlreadyExistsError("Budget")

        budget = Budget(user_id=user.id, **data.model_dump())
        self.db.add(budget)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise AlreadyExistsError("Budget") from e
        await self.db.refresh(budget, attribute_names=["category"])
        logger.info("budget_created", budget_id=budget.id, user_id=user.id)
        return await self._one(budget, user)

    async def update_budget(self, budget_id: int, data: BudgetUpdate, user: User) -> dict:
        budget = await self._get_owned(budget_id, user)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(budget, key, value)
        await self.db.flush()
        return await self._one(budget, user)

    async def delete_budget(self, budget_id: int, user: User) -> None:
        budget = await self._get_owned(budget_id, user)
        await self.db.delete(budget)
        await self.db.flush()

    async def _one(self, budget: Budget, user: User) -> dict:
        spend = await self._spend_rows(user, budget.month, budget.year, [budget])
        return _as_dict(budget, spend.get(budget.category_id))

    async def _spend_rows(
        self, user: User, month: int, year: int, budgets: list[Budget]
    ) -> dict[int | None, CategorySpend]:
        if not budgets:
            return {}
        tz = app_timezone()
        start, end = month_bounds(year, month, tz)
        transactions = (await self.db.execute(
            select(Transaction).where(
                Transaction.user_id == user.id,
                Transaction.deleted_at.is_(None),
                Transaction.type == "expense",
                Transaction.occurred_at >= start,
                Transaction.occurred_at < end,
            )
        )).scalars().all()
        rows = category_breakdown(filter_month(transactions, year, month, tz), budgets)
        return {row.category_id: row for row in rows}

    async def _get_owned(self, budget_id: int, user: User) -> Budget:
        result = await self.db.execute(
            select(Budget).where(Budget.id == budget_id, Budget.user_id == user.id)
        )
        budget = result.unique().scalar_one_or_none()
        if not budget:
            raise NotFoundError("Budget")
        return budget
