"""Transaction API routes."""

from datetime import date
from typing import Literal

import structlog
from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from monev.api.deps import get_current_user, get_db, get_receipt_scanner, get_voice_extractor
from monev.config import settings
from monev.core.exceptions import ValidationError
from monev.models.user import User
from monev.schemas.transaction import (
    PaginatedResponse,
    TransactionCreate,
    TransactionDraft,
    TransactionResponse,
    TransactionUpdate,
)
from monev.services.extraction import ReceiptScanner, VoiceExtractor
from monev.services.transaction_service import TransactionService

logger = structlog.get_logger()

router = APIRouter()


async def _read_upload(file: UploadFile, kind: str) -> bytes:
    content = await file.read()
    if not content:
        raise ValidationError(f"Empty {kind} upload")
    if len(content) > settings.max_upload_size_bytes:
        raise ValidationError(f"File too large (max {settings.max_upload_size_mb} MB)")
    return content


@router.get("", response_model=PaginatedResponse)
async def list_transactions(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    date_from: date | None = None,
    date_to: date | None = None,
    category_id: int | None = None,
    type: Literal["expense", "income", "transfer"] | None = None,
    search: str | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List transactions with pagination and filters."""
    service = TransactionService(db)
    return await service.list_transactions(
        user=current_user,
        page=page,
        per_page=per_page,
        date_from=date_from,
        date_to=date_to,
        category_id=category_id,
        type_=type,
        search=search,
    )


@router.post("", response_model=TransactionResponse, status_code=201)
async def create_transaction(
    data: TransactionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a transaction. ``amount`` is positive; the stored sign follows ``type``."""
    return await TransactionService(db).create_transaction(data, current_user)


@router.post("/ocr", response_model=TransactionDraft)
async def scan_receipt(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    scanner: ReceiptScanner = Depends(get_receipt_scanner),
):
    """Extract a draft from a receipt image. Nothing is saved."""
    if file.content_type and not file.content_type.startswith("image/"):
        raise ValidationError("Expected an image upload")
    content = await _read_upload(file, "image")
    draft = await scanner.scan(content, file.content_type or "image/jpeg")
    logger.info("receipt_draft", user_id=current_user.id, amount=draft.amount)
    return draft


@router.post("/voice", response_model=TransactionDraft)
async def extract_voice(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    extractor: VoiceExtractor = Depends(get_voice_extractor),
):
    """Transcribe a voice note into a draft. Nothing is saved."""
    content = await _read_upload(file, "audio")
    draft = await extractor.extract(content, file.filename or "voice.webm")
    logger.info("voice_draft", user_id=current_user.id, amount=draft.amount)
    return draft


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TransactionService(db).get_transaction(transaction_id, current_user)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: int,
    data: TransactionUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TransactionService(db).update_transaction(transaction_id, data, current_user)


@router.post("/{transaction_id}/verify", response_model=TransactionResponse)
async def verify_transaction(
    transaction_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark a transaction as checked by the user."""
    return await TransactionService(db).verify_transaction(transaction_id, current_user)


@router.delete("/{transaction_id}", status_code=204)
async def delete_transaction(
    transaction_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await TransactionService(db).delete_transaction(transaction_id, current_user)
