"""Shared API dependencies."""

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from monev.config import settings
from monev.core.database import get_db
from monev.core.exceptions import UnauthorizedError
from monev.core.security import get_current_user
from monev.services.analytics_service import AnalyticsService
from monev.services.budget_service import BudgetService
from monev.services.categorizer import get_categorizer
from monev.services.chat_service import ChatActions
from monev.services.extraction import get_receipt_scanner, get_voice_extractor
from monev.services.goal_service import GoalService
from monev.services.llm_provider import get_llm_provider
from monev.services.narrator import InsightNarrator, get_narrator
from monev.services.notifier import get_notifier
from monev.services.store import FinanceStore, get_store
from monev.services.telegram_bot import get_draft_store
from monev.services.transaction_service import TransactionService


def get_analytics_service(
    store: FinanceStore = Depends(get_store),
    narrator: InsightNarrator = Depends(get_narrator),
) -> AnalyticsService:
    return AnalyticsService(store, narrator)


def get_chat_actions(db: AsyncSession = Depends(get_db)) -> ChatActions:
    return ChatActions(TransactionService(db), BudgetService(db), GoalService(db))


async def verify_cron_secret(x_cron_secret: str | None = Header(default=None)) -> None:
    """Require X-Cron-Secret when CRON_SECRET is configured."""
    if settings.cron_secret and x_cron_secret != settings.cron_secret:
        raise UnauthorizedError("Invalid cron secret")


__all__ = [
    "get_analytics_service",
    "get_categorizer",
    "get_chat_actions",
    "get_current_user",
    "get_db",
    "get_draft_store",
    "get_llm_provider",
    "get_narrator",
    "get_notifier",
    "get_receipt_scanner",
    "get_store",
    "get_voice_extractor",
    "verify_cron_secret",
]
