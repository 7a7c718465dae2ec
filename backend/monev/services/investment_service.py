"""Investment portfolio service."""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from monev.core.exceptions import NotFoundError
from monev.models.investment import Investment
from monev.models.user import User
from monev.schemas.investment import InvestmentCreate, InvestmentUpdate


def valuation(investment: Investment) -> dict:
    """Cost basis, market value and gain of one holding, in whole currency units."""
    cost = round(Decimal(investment.quantity) * Decimal(investment.avg_buy_price))
    value = round(Decimal(investment.quantity) * Decimal(investment.current_price))
    gain = value - cost
    return {
        "cost_basis": int(cost),
        "market_value": int(value),
        "gain": int(gain),
        "gain_percentage": round(gain / cost * 100, 2) if cost else 0.0,
    }


def _as_dict(investment: Investment) -> dict:
    return {
        "id": investment.id,
        "name": investment.name,
        "type": investment.type,
        "quantity": investment.quantity,
        "avg_buy_price": investment.avg_buy_price,
        "current_price": investment.current_price,
        "platform": investment.platform,
        "icon": investment.icon,
        "color": investment.color,
        "notes": investment.notes,
        **valuation(investment),
    }


def summarize_portfolio(investments: list[Investment]) -> dict:
    total_cost = total_value = 0
    by_type: dict[str, int] = {}
    for investment in investments:
        figures = valuation(investment)
        total_cost += figures["cost_basis"]
        total_value += figures["market_value"]
        by_type[investment.type] = by_type.get(investment.type, 0) + figures["market_value"]
    gain = total_value - total_cost
    return {
        "total_cost": total_cost,
        "total_value": total_value,
        "total_gain": gain,
        "gain_percentage": round(gain / total_cost * 100, 2) if total_cost else 0.0,
        "by_type": by_type,
        "count": len(investments),
    }


class InvestmentService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _list(self, user: User) -> list[Investment]:
        result = await self.db.execute(
            select(Investment).where(Investment.user_id == user.id).order_by(Investment.id)
        )
        return list(result.scalars().all())

    async def list_investments(self, user: User) -> list[dict]:
        return [_as_dict(i) for i in await self._list(user)]

    async def summary(self, user: User) -> dict:
        return summarize_portfolio(await self._list(user))

    async def create_investment(self, data: InvestmentCreate, user: User) -> dict:
        investment = Investment(user_id=user.id, **data.model_dump(exclude_none=True))
        self.db.add(investment)
        await self.db.flush()
        await self.db.refresh(investment)
        return _as_dict(investment)

    async def update_investment(self, investment_id: int, data: InvestmentUpdate, user: User) -> dict:
        investment = await self._get_owned(investment_id, user)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(investment, key, value)
        await self.db.flush()
        await self.db.refresh(investment)
        return _as_dict(investment)

    async def delete_investment(self, investment_id: int, user: User) -> None:
        investment = await self._get_owned(investment_id, user)
        await self.db.delete(investment)
        await self.db.flush()

    async def _get_owned(self, investment_id: int, user: User) -> Investment:
        result = await self.db.execute(
            select(Investment).where(Investment.id == investment_id, Investment.user_id == user.id)
        )
        investment = result.scalar_one_or_none()
        if not investment:
            raise NotFoundError("Investment")
        return investment
