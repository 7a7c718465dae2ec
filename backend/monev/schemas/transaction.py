"""Transaction schemas for request/response validation."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from monev.schemas.base import PartialUpdate

TransactionType = Literal["expense", "income", "transfer"]
TransactionSource = Literal["manual", "ocr", "voice", "telegram", "chat"]


class TransactionCreate(BaseModel):
    # Always positive on input; the sign is derived from ``type``
    amount: int = Field(gt=0)
    description: str = Field(min_length=1, max_length=500)
    type: TransactionType = "expense"
    merchant_name: str | None = Field(default=None, max_length=255)
    category_id: int | None = None
    payment_method: str = "cash"
    occurred_at: datetime | None = None
    source: TransactionSource = "manual"
    is_verified: bool = False
    ai_confidence: float | None = Field(default=None, ge=0, le=1)


class TransactionUpdate(PartialUpdate):
    not_null = frozenset({"amount", "description", "type", "payment_method", "occurred_at"})

    amount: int | None = Field(default=None, gt=0)
    description: str | None = Field(default=None, min_length=1, max_length=500)
    type: TransactionType | None = None
    merchant_name: str | None = None
    category_id: int | None = None
    payment_method: str | None = None
    occurred_at: datetime | None = None


class TransactionResponse(BaseModel):
    id: int
    amount: int
    description: str
    merchant_name: str | None = None
    category_id: int | None = None
    category_name: str | None = None
    type: str
    payment_method: str
    occurred_at: datetime
    is_verified: bool
    source: str
    ai_confidence: float | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PaginatedResponse(BaseModel):
    items: list[TransactionResponse]
    total: int
    page: int
    per_page: int
    pages: int
    total_income: int = 0
    total_expense: int = 0


class TransactionDraft(BaseModel):
    """Best-effort extraction result. Never persisted without confirmation."""

    amount: int = 0
    type: Literal["expense", "income"] = "expense"
    merchant_name: str | None = None
    description: str | None = None
    category: str | None = None
    occurred_on: date | None = None
    transcription: str | None = None
    source: TransactionSource = "manual"

    @property
    def is_empty(self) -> bool:
        return self.amount <= 0
