"""Recurring bill schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from monev.schemas.base import PartialUpdate

BillFrequency = Literal["monthly", "weekly", "yearly"]


class BillCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    amount: int = Field(gt=0)
    category_id: int | None = None
    due_day: int = Field(default=1, ge=1, le=31)
    frequency: BillFrequency = "monthly"
    icon: str | None = None
    color: str | None = None
    notes: str | None = None


class BillUpdate(PartialUpdate):
    not_null = frozenset({"name", "amount", "due_day", "frequency", "is_paid", "is_active", "icon", "color"})

    name: str | None = Field(default=None, min_length=1, max_length=255)
    amount: int | None = Field(default=None, gt=0)
    category_id: int | None = None
    due_day: int | None = Field(default=None, ge=1, le=31)
    frequency: BillFrequency | None = None
    is_paid: bool | None = None
    is_active: bool | None = None
    icon: str | None = None
    color: str | None = None
    notes: str | None = None


class BillPayment(BaseModel):
    # Also record the payment as an expense transaction
    record_transaction: bool = True
    payment_method: str = "transfer"


class BillResponse(BaseModel):
    id: int
    name: str
    amount: int
    category_id: int | None = None
    due_day: int
    frequency: str
    is_paid: bool
    last_paid_at: datetime | None = None
    icon: str | None = None
    color: str | None = None
    is_active: bool
    notes: str | None = None

    model_config = {"from_attributes": True}
