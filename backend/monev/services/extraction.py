"""Transaction extraction from receipt images and voice notes.

Extraction is best-effort and never persists anything: failures come back
as an empty draft (amount 0) which the caller must confirm or discard.
"""

import base64
from abc import ABC, abstractmethod
from datetime import date

import openai
import structlog
from openai import AsyncOpenAI

from monev.config import settings
from monev.schemas.transaction import TransactionDraft
from monev.services.categorizer import CATEGORIES
from monev.services.llm_provider import extract_json

logger = structlog.get_logger()

_CATEGORY_HINTS = """Kategori yang tersedia:
- Makan & Minuman (restoran, cafe, makanan)
- Transportasi (grab, gojek, bensin, parkir, tol)
- Hiburan (netflix, spotify, bioskop, game)
- Belanja (belanja online, supermarket, pakaian)
- Kesehatan (apotek, dokter, gym)
- Pendidikan (kursus, buku, sekolah)
- Tagihan (listrik, air, internet, pulsa)
- Investasi (reksadana, saham, crypto)
- Gaji (pendapatan tetap)
- Freelance (pendapatan tidak tetap)
- Lainnya"""

_JSON_SHAPE = """Jawab hanya dengan JSON, tanpa markdown:
{"merchant_name": "nama merchant", "amount": 50000, "description": "deskripsi",
 "date": "2026-02-13", "category": "Makan & Minuman", "type": "expense"}"""

RECEIPT_PROMPT = f"""Kamu mengekstrak informasi transaksi dari foto struk atau screenshot transfer.
Ambil nama merchant, nominal (angka saja tanpa Rp), deskripsi singkat, dan tanggal
(format ISO, kosongkan jika tidak terlihat).

{_CATEGORY_HINTS}

{_JSON_SHAPE}"""

VOICE_PROMPT = f"""Kamu mengekstrak informasi transaksi dari transkrip voice note.
Ambil nama merchant jika disebut, nominal (angka saja), deskripsi singkat, dan
tanggal (kosongkan jika tidak disebut). Kata seperti "gaji" atau "terima" berarti
pemasukan (type "income").

{_CATEGORY_HINTS}

{_JSON_SHAPE}"""


def _parse_amount(value) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return max(0, round(value))
    if isinstance(value, str):
        digits = "".join(ch for ch in value.split(",")[0] if ch.isdigit())
        return int(digits) if digits else 0
    return 0


def _parse_date(value) -> date | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def draft_from_reply(reply: str, source: str, transcription: str | None = None) -> TransactionDraft:
    """Build a draft from a model reply; anything unusable is dropped."""
    data = extract_json(reply) or {}
    category = data.get("category")
    type_ = data.get("type") if data.get("type") in ("expense", "income") else "expense"
    description = data.get("description") or transcription
    return TransactionDraft(
        amount=_parse_amount(data.get("amount")),
        type=type_,
        merchant_name=data.get("merchant_name") or data.get("merchantName") or None,
        description=description or None,
        category=category if category in CATEGORIES else None,
        occurred_on=_parse_date(data.get("date")),
        transcription=transcription,
        source=source,
    )


class ReceiptScanner(ABC):
    @abstractmethod
    async def scan(self, image: bytes, content_type: str = "image/jpeg") -> TransactionDraft:
        """Extract a draft from a receipt image."""


class VoiceExtractor(ABC):
    @abstractmethod
    async def extract(self, audio: bytes, filename: str = "voice.ogg") -> TransactionDraft:
        """Transcribe a voice note and extract a draft from it."""


class OpenAIReceiptScanner(ReceiptScanner):
    def __init__(self, client: AsyncOpenAI | None = None):
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.ai_timeout_seconds)
        self.model = settings.openai_vision_model

    async def scan(self, image: bytes, content_type: str = "image/jpeg") -> TransactionDraft:
        data_url = f"data:{content_type};base64,{base64.b64encode(image).decode()}"
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": RECEIPT_PROMPT},
                    {"role": "user", "content": [{"type": "image_url", "image_url": {"url": data_url}}]},
                ],
                max_tokens=500,
            )
        except openai.OpenAIError as e:
            logger.error("receipt_scan_failed", error=str(e))
            return TransactionDraft(source="ocr")
        draft = draft_from_reply(response.choices[0].message.content or "", source="ocr")
        logger.info("receipt_scanned", amount=draft.amount, merchant=draft.merchant_name)
        return draft


class OpenAIVoiceExtractor(VoiceExtractor):
    def __init__(self, client: AsyncOpenAI | None = None):
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.ai_timeout_seconds)

    async def extract(self, audio: bytes, filename: str = "voice.ogg") -> TransactionDraft:
        try:
            transcription = await self.client.audio.transcriptions.create(
                file=(filename, audio),
                model=settings.openai_transcribe_model,
                language=settings.openai_transcribe_language,
            )
        except openai.OpenAIError as e:
            logger.error("voice_transcription_failed", error=str(e))
            return TransactionDraft(source="voice")

        text = transcription.text.strip()
        if not text:
            return TransactionDraft(source="voice")
        try:
            response = await self.client.chat.completions.create(
                model=settings.openai_model,
                messages=[
                    {"role": "system", "content": VOICE_PROMPT},
                    {"role": "user", "content": text},
                ],
                max_tokens=500,
                response_format={"type": "json_object"},
            )
            reply = response.choices[0].message.content or ""
        except openai.OpenAIError as e:
            logger.error("voice_extraction_failed", error=str(e))
            reply = ""
        draft = draft_from_reply(reply, source="voice", transcription=text)
        logger.info("voice_extracted", amount=draft.amount, chars=len(text))
        return draft


def get_receipt_scanner() -> ReceiptScanner:
    return OpenAIReceiptScanner()


def get_voice_extractor() -> VoiceExtractor:
    return OpenAIVoiceExtractor()
