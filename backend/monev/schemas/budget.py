"""Budget schemas."""

from pydantic import BaseModel, Field

from monev.schemas.base import PartialUpdate


class BudgetCreate(BaseModel):
    category_id: int
    amount: int = Field(gt=0)
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=9999)


class BudgetUpdate(PartialUpdate):
    not_null = frozenset({"amount"})

    amount: int | None = Field(default=None, gt=0)


class BudgetResponse(BaseModel):
    id: int
    category_id: int
    category_name: str | None = None
    amount: int
    month: int
    year: int
    spent: int = 0
    remaining: int = 0
    percentage: float | None = None
    over_budget: bool = False
