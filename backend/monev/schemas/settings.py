"""User settings schemas."""

from typing import Literal

from pydantic import BaseModel, Field

from monev.schemas.base import PartialUpdate


class SettingsUpdate(PartialUpdate):
    not_null = frozenset({"hourly_rate", "language", "daily_recap_enabled"})

    hourly_rate: int | None = Field(default=None, ge=0)
    primary_goal_id: int | None = None
    language: Literal["id", "en"] | None = None
    daily_recap_enabled: bool | None = None
    # Links the account to a Telegram chat; 0 unlinks
    telegram_chat_id: int | None = None


class SettingsResponse(BaseModel):
    hourly_rate: int
    primary_goal_id: int | None = None
    language: str
    daily_recap_enabled: bool
    telegram_chat_id: int | None = None
