"""Per-user settings, including the Telegram chat link."""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from monev.core.exceptions import AlreadyExistsError, ValidationError
from monev.models.goal import Goal
from monev.models.user import User
from monev.models.user_settings import UserSettings
from monev.schemas.settings import SettingsUpdate

logger = structlog.get_logger()


class SettingsService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_or_create(self, user: User) -> UserSettings:
        result = await self.db.execute(select(UserSettings).where(UserSettings.user_id == user.id))
        user_settings = result.scalar_one_or_none()
        if user_settings is None:
            user_settings = UserSettings(user_id=user.id)
            self.db.add(user_settings)
            await self.db.flush()
            await self.db.refresh(user_settings)
        return user_settings

    def _as_dict(self, user_settings: UserSettings, user: User) -> dict:
        return {
            "hourly_rate": user_settings.hourly_rate,
            "primary_goal_id": user_settings.primary_goal_id,
            "language": user_settings.language,
            "daily_recap_enabled": user_settings.daily_recap_enabled,
            "telegram_chat_id": user.telegram_chat_id,
        }

    async def get_settings(self, user: User) -> dict:
        return self._as_dict(await self._get_or_create(user), user)

    async def update_settings(self, data: SettingsUpdate, user: User) -> dict:
        user_settings = await self._get_or_create(user)
        update_data = data.model_dump(exclude_unset=True)

        if "telegram_chat_id" in update_data:
            chat_id = update_data.pop("telegram_chat_id")
            await self._link_chat(user, chat_id or None)

        goal_id = update_data.get("primary_goal_id")
        if goal_id is not None:
            goal = await self.db.get(Goal, goal_id)
            if not goal or goal.user_id != user.id:
                raise ValidationError(f"Unknown goal: {goal_id}")

        for key, value in update_data.items():
            setattr(user_settings, key, value)
        await self.db.flush()
        await self.db.refresh(user_settings)
        return self._as_dict(user_settings, user)

    async def _link_chat(self, user: User, chat_id: int | None) -> None:
        if chat_id is not None:
            result = await self.db.execute(
                select(User.id).where(User.telegram_chat_id == chat_id, User.id != user.id)
            )
            if result.scalar_one_or_none() is not None:
                raise AlreadyExistsError("Telegram link")
        user.telegram_chat_id = chat_id
        logger.info("telegram_link_updated", user_id=user.id, linked=chat_id is not None)
