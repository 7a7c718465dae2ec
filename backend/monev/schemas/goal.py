"""Savings goal schemas."""

from datetime import date

from pydantic import BaseModel, Field

from monev.schemas.base import PartialUpdate


class GoalCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    target_amount: int = Field(gt=0)
    current_amount: int = Field(default=0, ge=0)
    deadline: date | None = None
    icon: str | None = None
    color: str | None = None


class GoalUpdate(PartialUpdate):
    not_null = frozenset({"name", "target_amount", "current_amount", "icon", "color"})

    name: str | None = Field(default=None, min_length=1, max_length=255)
    target_amount: int | None = Field(default=None, gt=0)
    current_amount: int | None = Field(default=None, ge=0)
    deadline: date | None = None
    icon: str | None = None
    color: str | None = None


class GoalContribution(BaseModel):
    amount: int = Field(gt=0)


class GoalResponse(BaseModel):
    id: int
    name: str
    target_amount: int
    current_amount: int
    deadline: date | None = None
    icon: str | None = None
    color: str | None = None
    progress: float = 0.0
    is_completed: bool = False
    # Target after 5%/year inflation until the deadline
    inflation_adjusted_target: int | None = None
