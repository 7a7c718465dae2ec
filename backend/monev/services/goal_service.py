"""Savings goal service."""

from datetime import date
from math import ceil

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from monev.core.exceptions import NotFoundError
from monev.models.goal import Goal
from monev.models.user import User
from monev.schemas.goal import GoalContribution, GoalCreate, GoalUpdate
from monev.services.financial_advising import calculate_future_value
from monev.services.monthly_aggregator import goal_progress

logger = structlog.get_logger()


def _as_dict(goal: Goal, today: date | None = None) -> dict:
    today = today or date.today()
    adjusted = None
    if goal.deadline and goal.deadline > today:
        years = (goal.deadline - today).days / 365.25
        adjusted = calculate_future_value(goal.target_amount, years)
    return {
        "id": goal.id,
        "name": goal.name,
        "target_amount": goal.target_amount,
        "current_amount": goal.current_amount,
        "deadline": goal.deadline,
        "icon": goal.icon,
        "color": goal.color,
        "progress": goal_progress(goal.current_amount, goal.target_amount),
        "is_completed": goal.current_amount >= goal.target_amount,
        "inflation_adjusted_target": adjusted,
    }


class GoalService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_goals(self, user: User) -> list[dict]:
        result = await self.db.execute(select(Goal).where(Goal.user_id == user.id).order_by(Goal.id))
        return [_as_dict(g) for g in result.scalars().all()]

    async def get_goal(self, goal_id: int, user: User) -> dict:
        return _as_dict(await self._get_owned(goal_id, user))

    async def create_goal(self, data: GoalCreate, user: User) -> dict:
        values = data.model_dump(exclude_none=True)
        goal = Goal(user_id=user.id, **values)
        self.db.add(goal)
        await self.db.flush()
        await self.db.refresh(goal)
        logger.info("goal_created", goal_id=goal.id, user_id=user.id)
        return _as_dict(goal)

    async def update_goal(self, goal_id: int, data: GoalUpdate, user: User) -> dict:
        goal = await self._get_owned(goal_id, user)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(goal, key, value)
        await self.db.flush()
        await self.db.refresh(goal)
        return _as_dict(goal)

    async def contribute(self, goal_id: int, data: GoalContribution, user: User) -> dict:
        goal = await self._get_owned(goal_id, user)
        goal.current_amount += data.amount
        await self.db.flush()
        await self.db.refresh(goal)
        logger.info("goal_contribution", goal_id=goal.id, amount=data.amount)
        return _as_dict(goal)

    async def delete_goal(self, goal_id: int, user: User) -> None:
        goal = await self._get_owned(goal_id, user)
        await self.db.delete(goal)
        await self.db.flush()

    async def apply_inflation(self, user_id: int, rate: float) -> list[tuple[str, int, int]]:
        """Raise every unfinished goal target by ``rate``, rounding up.

        Returns (name, old target, new target) per adjusted goal.
        """
        result = await self.db.execute(select(Goal).where(Goal.user_id == user_id).order_by(Goal.id))
        adjusted = []
        for goal in result.scalars().all():
            if goal.current_amount >= goal.target_amount:
                continue
            old = goal.target_amount
            goal.target_amount = ceil(round(old * (1 + rate), 6))
            adjusted.append((goal.name, old, goal.target_amount))
        await self.db.flush()
        if adjusted:
            logger.info("goal_targets_adjusted", user_id=user_id, goals=len(adjusted), rate=rate)
        return adjusted

    async def _get_owned(self, goal_id: int, user: User) -> Goal:
        result = await self.db.execute(select(Goal).where(Goal.id == goal_id, Goal.user_id == user.id))
        goal = result.scalar_one_or_none()
        if not goal:
            raise NotFoundError("Goal")
        return goal
