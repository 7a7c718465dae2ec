"""Telegram webhook routes."""

import structlog
from fastapi import APIRouter, Body, Depends, Header
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from monev.api.deps import (
    get_analytics_service,
    get_categorizer,
    get_db,
    get_draft_store,
    get_notifier,
    get_receipt_scanner,
    get_store,
    get_voice_extractor,
)
from monev.config import settings
from monev.core.exceptions import UnauthorizedError
from monev.services.analytics_service import AnalyticsService
from monev.services.categorizer import Categorizer
from monev.services.extraction import ReceiptScanner, VoiceExtractor
from monev.services.notifier import TelegramNotifier
from monev.services.store import FinanceStore
from monev.services.telegram_bot import DraftStore, TelegramBot
from monev.services.transaction_service import TransactionService

logger = structlog.get_logger()
router = APIRouter()


@router.post("/webhook")
async def telegram_webhook(
    update: dict = Body(...),
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
    store: FinanceStore = Depends(get_store),
    notifier: TelegramNotifier = Depends(get_notifier),
    analytics: AnalyticsService = Depends(get_analytics_service),
    categorizer: Categorizer = Depends(get_categorizer),
    scanner: ReceiptScanner = Depends(get_receipt_scanner),
    voice: VoiceExtractor = Depends(get_voice_extractor),
    drafts: DraftStore = Depends(get_draft_store),
):
    """Receive one Telegram Update."""
    if not notifier.configured:
        logger.error("telegram_not_configured")
        return JSONResponse(status_code=500, content={"error": "Bot not configured"})
    # setWebhook(secret_token=CRON_SECRET) makes Telegram send this header
    if settings.cron_secret and x_telegram_bot_api_secret_token not in (None, settings.cron_secret):
        raise UnauthorizedError("Invalid webhook secret")

    bot = TelegramBot(
        store=store,
        notifier=notifier,
        recorder=TransactionService(db),
        analytics=analytics,
        categorizer=categorizer,
        scanner=scanner,
        voice=voice,
        drafts=drafts,
    )
    await bot.handle_update(update)
    return {"ok": True}


@router.get("/webhook")
async def webhook_status(notifier: TelegramNotifier = Depends(get_notifier)):
    """Setup check for the webhook URL."""
    if not notifier.configured:
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": "TELEGRAM_BOT_TOKEN not configured"},
        )
    return {
        "status": "ok",
        "message": "Telegram webhook endpoint is ready",
        "webhook_url": f"{settings.public_app_url.rstrip('/')}/api/v1/telegram/webhook",
    }
