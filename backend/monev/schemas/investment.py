"""Investment portfolio schemas."""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from monev.schemas.base import PartialUpdate

InvestmentType = Literal["stock", "crypto", "mutual_fund", "gold", "bond", "other"]


class InvestmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: InvestmentType = "stock"
    quantity: Decimal = Field(gt=0)
    avg_buy_price: Decimal = Field(ge=0)
    current_price: Decimal = Field(ge=0)
    platform: str | None = None
    icon: str | None = None
    color: str | None = None
    notes: str | None = None


class InvestmentUpdate(PartialUpdate):
    not_null = frozenset({"name", "type", "quantity", "avg_buy_price", "current_price", "icon", "color"})

    name: str | None = Field(default=None, min_length=1, max_length=100)
    type: InvestmentType | None = None
    quantity: Decimal | None = Field(default=None, gt=0)
    avg_buy_price: Decimal | None = Field(default=None, ge=0)
    current_price: Decimal | None = Field(default=None, ge=0)
    platform: str | None = None
    icon: str | None = None
    color: str | None = None
    notes: str | None = None


class InvestmentResponse(BaseModel):
    id: int
    name: str
    type: str
    quantity: Decimal
    avg_buy_price: Decimal
    current_price: Decimal
    platform: str | None = None
    icon: str | None = None
    color: str | None = None
    notes: str | None = None
    cost_basis: int
    market_value: int
    gain: int
    gain_percentage: float


class PortfolioSummary(BaseModel):
    total_cost: int
    total_value: int
    total_gain: int
    gain_percentage: float
    by_type: dict[str, int]
    count: int
