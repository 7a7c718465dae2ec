"""User settings API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from monev.api.deps import get_current_user, get_db
from monev.models.user import User
from monev.schemas.settings import SettingsResponse, SettingsUpdate
from monev.services.settings_service import SettingsService

router = APIRouter()


@router.get("", response_model=SettingsResponse)
async def get_settings(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SettingsService(db).get_settings(current_user)


@router.patch("", response_model=SettingsResponse)
async def update_settings(
    data: SettingsUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update preferences. ``telegram_chat_id`` links the bot chat (0 unlinks)."""
    return await SettingsService(db).update_settings(data, current_user)
