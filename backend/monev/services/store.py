"""Read access to a user's finance records.

Each read opens its own session, so independent reads can run concurrently
under ``asyncio.gather``. Writes go through the CRUD services instead.
"""

from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from monev.core.database import async_session_factory
from monev.models.budget import Budget
from monev.models.category import Category
from monev.models.goal import Goal
from monev.models.investment import Investment
from monev.models.transaction import Transaction
from monev.models.user import User
from monev.models.user_settings import UserSettings


class FinanceStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = async_session_factory):
        self.session_factory = session_factory

    async def list_transactions(
        self, user_id: int, start: datetime | None = None, end: datetime | None = None
    ) -> list[Transaction]:
        """Live transactions with ``start <= occurred_at < end``, oldest first."""
        query = select(Transaction).where(
            Transaction.user_id == user_id,
            Transaction.deleted_at.is_(None),
        )
        if start is not None:
            query = query.where(Transaction.occurred_at >= start)
        if end is not None:
            query = query.where(Transaction.occurred_at < end)
        query = query.order_by(Transaction.occurred_at, Transaction.id)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_recent_transactions(self, user_id: int, limit: int = 5) -> list[Transaction]:
        query = (
            select(Transaction)
            .where(Transaction.user_id == user_id, Transaction.deleted_at.is_(None))
            .order_by(Transaction.occurred_at.desc(), Transaction.id.desc())
            .limit(limit)
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_budgets(self, user_id: int, month: int, year: int) -> list[Budget]:
        query = select(Budget).where(
            Budget.user_id == user_id,
            Budget.month == month,
            Budget.year == year,
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().unique().all())

    async def list_goals(self, user_id: int) -> list[Goal]:
        query = select(Goal).where(Goal.user_id == user_id).order_by(Goal.id)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_categories(self, user_id: int) -> list[Category]:
        """System categories plus the user's own."""
        query = (
            select(Category)
            .where(or_(Category.is_system.is_(True), Category.user_id == user_id))
            .order_by(Category.type, Category.name)
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_investments(self, user_id: int) -> list[Investment]:
        query = select(Investment).where(Investment.user_id == user_id).order_by(Investment.id)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def totals_by_type(self, user_id: int, end: datetime | None = None) -> dict[str, int]:
        """Lifetime absolute totals per transaction type, optionally up to ``end``."""
        query = select(
            Transaction.type,
            func.coalesce(func.sum(func.abs(Transaction.amount)), 0),
        ).where(Transaction.user_id == user_id, Transaction.deleted_at.is_(None))
        if end is not None:
            query = query.where(Transaction.occurred_at < end)
        query = query.group_by(Transaction.type)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return {type_: int(total) for type_, total in result.all()}

    async def get_user_by_chat_id(self, chat_id: int) -> User | None:
        query = select(User).where(User.telegram_chat_id == chat_id, User.is_active.is_(True))
        async with self.session_factory() as session:
            result = await session.execute(query)
            return result.scalar_one_or_none()

    async def get_settings(self, user_id: int) -> UserSettings | None:
        query = select(UserSettings).where(UserSettings.user_id == user_id)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return result.scalar_one_or_none()

    async def list_notifiable_users(self) -> list[tuple[User, UserSettings | None]]:
        """Active users with a linked Telegram chat, with their settings if any."""
        query = (
            select(User, UserSettings)
            .outerjoin(UserSettings, UserSettings.user_id == User.id)
            .where(User.telegram_chat_id.is_not(None), User.is_active.is_(True))
            .order_by(User.id)
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return [(user, user_settings) for user, user_settings in result.all()]


def get_store() -> FinanceStore:
    return FinanceStore()
