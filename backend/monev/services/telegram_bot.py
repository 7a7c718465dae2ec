"""Telegram bot: command dispatch, quick text entry, receipt and voice drafts.

Updates arrive through the webhook route. Chats are mapped to users by
``users.telegram_chat_id``. Photo and voice extraction only ever produce a
draft, held per chat until the user confirms or cancels it.
"""

import re
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Protocol

import structlog

from monev.config import settings
from monev.models.user import User
from monev.schemas.transaction import TransactionCreate, TransactionDraft
from monev.services.analytics_service import AnalyticsService
from monev.services.categorizer import Categorizer
from monev.services.extraction import ReceiptScanner, VoiceExtractor
from monev.services.insight_formatter import (
    budget_alert_block,
    format_currency,
    format_date,
    monthly_summary_block,
    render,
    resolve_language,
    subscription_block,
    transaction_message,
)
from monev.services.notifier import TelegramNotifier
from monev.services.periods import app_timezone, local_date, month_bounds
from monev.services.store import FinanceStore

logger = structlog.get_logger()

INCOME_KEYWORDS = ("gaji", "masuk", "terima", "income", "bonus", "thr", "hadiah", "investasi")

CATEGORY_KEYWORDS = {
    "Makan & Minuman": ["makan", "minum", "kopi", "warteg", "restoran", "kantin", "sarapan", "jajan"],
    "Transportasi": ["bensin", "parkir", "tol", "gojek", "grab", "ojek", "bus", "kereta", "krl"],
    "Belanja": ["beli", "belanja", "shopee", "tokopedia", "lazada", "indomaret", "alfamart"],
    "Hiburan": ["nonton", "game", "hiburan", "netflix", "spotify", "bioskop"],
    "Kesehatan": ["obat", "dokter", "rumah sakit", "rs", "apotek", "gym"],
    "Pendidikan": ["buku", "kursus", "pelatihan", "sekolah", "kuliah"],
    "Tagihan": ["listrik", "pln", "pdam", "internet", "wifi", "pulsa", "token"],
    "Gaji": ["gaji", "salary", "thr"],
    "Freelance": ["freelance", "proyek", "project", "fee"],
}

_MULTIPLIERS = {"rb": 1_000, "ribu": 1_000, "k": 1_000, "jt": 1_000_000, "juta": 1_000_000}
_AMOUNT_RE = re.compile(r"(\d+(?:[.,]\d+)*)\s*(rb|ribu|k|jt|juta)?(?![\w])", re.IGNORECASE)
_CURRENCY_RE = re.compile(r"\brp\.?\s*", re.IGNORECASE)

MENU_KEYBOARD = {
    "inline_keyboard": [
        [{"text": "➕ Catat", "callback_data": "record"}, {"text": "💰 Saldo", "callback_data": "balance"}],
        [{"text": "📋 Riwayat", "callback_data": "recent"}, {"text": "📈 Ringkasan", "callback_data": "summary"}],
        [{"text": "🕵️ Langganan", "callback_data": "subscriptions"}],
    ]
}
DRAFT_KEYBOARD = {
    "inline_keyboard": [
        [{"text": "✅ Simpan", "callback_data": "confirm_draft"}, {"text": "❌ Batal", "callback_data": "cancel_draft"}],
    ]
}

_BOT_TEXT = {
    "id": {
        "welcome": (
            "👋 Halo, {name}!\n\nSelamat datang di Monev, asisten keuangan pribadimu.\n\n"
            "Ketik langsung jumlah dan deskripsi, misalnya \"50000 makan siang\", "
            "atau kirim foto struk dan voice note. Ketik /help untuk daftar perintah."
        ),
        "help": (
            "❓ Bantuan\n\n"
            "/record - cara mencatat transaksi\n"
            "/balance (/saldo) - saldo bulan ini\n"
            "/recent (/riwayat) - 5 transaksi terbaru\n"
            "/summary (/ringkasan) - ringkasan bulan ini\n"
            "/subscriptions (/langganan) - tagihan berulang\n"
            "/cancel (/batal) - batalkan draft\n\n"
            "Pemasukan: sertakan kata seperti \"gaji\", \"masuk\" atau \"terima\"."
        ),
        "record": (
            "📝 Catat transaksi dengan format [jumlah] [deskripsi]\n\n"
            "Contoh:\n• 50000 makan siang\n• 25rb parkir\n• 5jt gaji bulan ini\n\n"
            "Atau kirim foto struk / voice note."
        ),
        "link_hint": (
            "Chat ini belum terhubung ke akun Monev.\n"
            "Buka Pengaturan di aplikasi dan isi Telegram chat ID: {chat_id}"
        ),
        "cancelled": "❌ Dibatalkan. Ketik /record untuk mencatat transaksi baru.",
        "unknown_command": "❓ Perintah tidak dikenali: {command}\nKetik /help untuk daftar perintah.",
        "parse_failed": "❌ Format tidak dikenali. Contoh: 50000 makan siang\nKetik /help untuk bantuan.",
        "recent_title": "📋 Transaksi terbaru",
        "recent_empty": "📭 Belum ada transaksi tercatat. Ketik /record untuk mulai.",
        "extraction_failed": "😕 Maaf, nominalnya tidak terbaca. Coba kirim ulang atau ketik manual.",
        "download_failed": "😕 File tidak bisa diunduh dari Telegram. Coba lagi sebentar.",
        "no_draft": "Tidak ada draft yang menunggu konfirmasi.",
        "draft_discarded": "🗑️ Draft dibuang.",
        "error": "❌ Terjadi kesalahan. Silakan coba lagi.",
        "summary_counts": "{income} transaksi pemasukan, {expense} transaksi pengeluaran",
    },
    "en": {
        "welcome": (
            "👋 Hi, {name}!\n\nWelcome to Monev, your personal finance assistant.\n\n"
            "Type an amount and a description, e.g. \"50000 lunch\", or send a receipt "
            "photo or a voice note. Type /help for the command list."
        ),
        "help": (
            "❓ Help\n\n"
            "/record - how to record a transaction\n"
            "/balance - this month's balance\n"
            "/recent - latest 5 transactions\n"
            "/summary - this month's summary\n"
            "/subscriptions - recurring charges\n"
            "/cancel - discard the pending draft\n\n"
            "Income: include a word like \"income\", \"bonus\" or \"gaji\"."
        ),
        "record": (
            "📝 Record a transaction as [amount] [description]\n\n"
            "Examples:\n• 50000 lunch\n• 25k parking\n• 5jt salary\n\n"
            "Or send a receipt photo / voice note."
        ),
        "link_hint": (
            "This chat is not linked to a Monev account yet.\n"
            "Open Settings in the app and enter Telegram chat ID: {chat_id}"
        ),
        "cancelled": "❌ Cancelled. Type /record to record a new transaction.",
        "unknown_command": "❓ Unknown command: {command}\nType /help for the command list.",
        "parse_failed": "❌ Could not read that. Example: 50000 lunch\nType /help for help.",
        "recent_title": "📋 Latest transactions",
        "recent_empty": "📭 No transactions yet. Type /record to start.",
        "extraction_failed": "😕 Sorry, I could not read the amount. Try again or type it in.",
        "download_failed": "😕 Could not download the file from Telegram. Please try again.",
        "no_draft": "There is no draft waiting for confirmation.",
        "draft_discarded": "🗑️ Draft discarded.",
        "error": "❌ Something went wrong. Please try again.",
        "summary_counts": "{income} income transactions, {expense} expense transactions",
    },
}


def _text(lang: str, key: str, **kwargs) -> str:
    template = _BOT_TEXT[resolve_language(lang)][key]
    return template.format(**kwargs) if kwargs else template


@dataclass(frozen=True)
class QuickEntry:
    amount: int
    description: str
    type: str


def parse_amount_token(number: str, suffix: str | None) -> int | None:
    if suffix:
        # "1,5jt" / "1.5jt": a single separator is a decimal point
        parts = re.split(r"[.,]", number)
        if len(parts) > 2:
            return None
        value = float(".".join(parts))
        return round(value * _MULTIPLIERS[suffix.lower()])
    return int(re.sub(r"[.,]", "", number))


def parse_quick_entry(text: str) -> QuickEntry | None:
    """Parse free text like "50000 makan siang" or "Rp 1.500.000 gaji".

    Returns None when there is no positive amount.
    """
    clean = _CURRENCY_RE.sub("", text)
    match = _AMOUNT_RE.search(clean)
    if not match:
        return None
    amount = parse_amount_token(match.group(1), match.group(2))
    if not amount or amount <= 0:
        return None

    description = " ".join((clean[:match.start()] + " " + clean[match.end():]).split())
    lowered = text.lower()
    type_ = "income" if any(kw in lowered for kw in INCOME_KEYWORDS) else "expense"
    if not description:
        description = "Pemasukan" if type_ == "income" else "Pengeluaran"
    return QuickEntry(amount=amount, description=description, type=type_)


def guess_category_name(description: str) -> str | None:
    """Keyword-based category guess; multi-word keywords match as phrases."""
    lowered = description.lower()
    words = set(re.findall(r"\w+", lowered))
    for name, keywords in CATEGORY_KEYWORDS.items():
        for keyword in keywords:
            if (" " in keyword and keyword in lowered) or keyword in words:
                return name
    return None


class DraftStore:
    """Pending extraction drafts keyed by chat id. In-process only."""

    def __init__(self) -> None:
        self._drafts: dict[int, TransactionDraft] = {}

    def put(self, chat_id: int, draft: TransactionDraft) -> None:
        self._drafts[chat_id] = draft

    def get(self, chat_id: int) -> TransactionDraft | None:
        return self._drafts.get(chat_id)

    def pop(self, chat_id: int) -> TransactionDraft | None:
        return self._drafts.pop(chat_id, None)


draft_store = DraftStore()


def get_draft_store() -> DraftStore:
    return draft_store


class TransactionRecorder(Protocol):
    async def create_transaction(self, data: TransactionCreate, user: User) -> dict: ...


class TelegramBot:
    def __init__(
        self,
        *,
        store: FinanceStore,
        notifier: TelegramNotifier,
        recorder: TransactionRecorder,
        analytics: AnalyticsService,
        categorizer: Categorizer,
        scanner: ReceiptScanner,
        voice: VoiceExtractor,
        drafts: DraftStore,
    ):
        self.store = store
        self.notifier = notifier
        self.recorder = recorder
        self.analytics = analytics
        self.categorizer = categorizer
        self.scanner = scanner
        self.voice = voice
        self.drafts = drafts
        self.tz = app_timezone()

    async def handle_update(self, update: dict) -> None:
        """Process one Telegram Update. Failures are reported to the chat, not raised."""
        callback = update.get("callback_query")
        message = update.get("message") or update.get("edited_message")
        chat = (callback or {}).get("message", {}).get("chat") if callback else (message or {}).get("chat")
        if not chat or "id" not in chat:
            return
        chat_id = chat["id"]
        log = logger.bind(chat_id=chat_id, update_id=update.get("update_id"))

        try:
            if callback:
                await self.notifier.answer_callback(callback["id"])
            user = await self.store.get_user_by_chat_id(chat_id)
            lang = await self._language(user)
            if callback:
                await self._on_callback(chat_id, user, lang, callback.get("data", ""))
            else:
                await self._on_message(chat_id, user, lang, message)
        except Exception:
            log.exception("telegram_update_failed")
            await self.notifier.send_message(chat_id, _text(settings.default_language, "error"))

    async def _language(self, user: User | None) -> str:
        if user is None:
            return settings.default_language
        user_settings = await self.store.get_settings(user.id)
        return resolve_language(user_settings.language if user_settings else settings.default_language)

    async def _on_message(self, chat_id: int, user: User | None, lang: str, message: dict) -> None:
        text = (message.get("text") or "").strip()
        first_name = message.get("from", {}).get("first_name", "")

        if text.startswith("/"):
            command = text.split()[0].split("@")[0].lower()
            if command == "/start":
                await self.notifier.send_message(chat_id, _text(lang, "welcome", name=first_name), MENU_KEYBOARD)
                if user is None:
                    await self.notifier.send_message(chat_id, _text(lang, "link_hint", chat_id=chat_id))
                return
            if command == "/help":
                await self.notifier.send_message(chat_id, _text(lang, "help"))
                return
            if command in ("/cancel", "/batal"):
                self.drafts.pop(chat_id)
                await self.notifier.send_message(chat_id, _text(lang, "cancelled"))
                return
            if user is None:
                await self.notifier.send_message(chat_id, _text(lang, "link_hint", chat_id=chat_id))
                return
            handler = self._commands().get(command)
            if handler is None:
                await self.notifier.send_message(chat_id, _text(lang, "unknown_command", command=command))
                return
            await handler(chat_id, user, lang)
            return

        if user is None:
            await self.notifier.send_message(chat_id, _text(lang, "link_hint", chat_id=chat_id))
            return
        if message.get("photo"):
            await self._on_photo(chat_id, lang, message["photo"])
        elif message.get("voice"):
            await self._on_voice(chat_id, lang, message["voice"])
        elif text:
            await self._quick_record(chat_id, user, lang, text)

    def _commands(self) -> dict:
        return {
            "/record": self._record_help,
            "/balance": self._balance,
            "/saldo": self._balance,
            "/recent": self._recent,
            "/riwayat": self._recent,
            "/summary": self._summary,
            "/ringkasan": self._summary,
            "/subscriptions": self._subscriptions,
            "/langganan": self._subscriptions,
        }

    async def _on_callback(self, chat_id: int, user: User | None, lang: str, data: str) -> None:
        if user is None:
            await self.notifier.send_message(chat_id, _text(lang, "link_hint", chat_id=chat_id))
            return
        if data == "confirm_draft":
            await self._confirm_draft(chat_id, user, lang)
        elif data == "cancel_draft":
            discarded = self.drafts.pop(chat_id)
            await self.notifier.send_message(chat_id, _text(lang, "draft_discarded" if discarded else "no_draft"))
        else:
            handler = self._commands().get(f"/{data}")
            if handler is not None:
                await handler(chat_id, user, lang)

    # ── Commands ──────────────────────────────────
    async def _record_help(self, chat_id: int, user: User, lang: str) -> None:
        await self.notifier.send_message(chat_id, _text(lang, "record"))

    async def _balance(self, chat_id: int, user: User, lang: str) -> None:
        today = datetime.now(self.tz).date()
        report, _ = await self.analytics.monthly_report(user.id, today.year, today.month)
        await self.notifier.send_message(
            chat_id, monthly_summary_block(report.stats, today.year, today.month, lang), MENU_KEYBOARD
        )

    async def _summary(self, chat_id: int, user: User, lang: str) -> None:
        today = datetime.now(self.tz).date()
        report, _ = await self.analytics.monthly_report(user.id, today.year, today.month)
        transactions = await self.store.list_transactions(
            user.id, *month_bounds(today.year, today.month, self.tz)
        )
        counts = {"income": 0, "expense": 0}
        for txn in transactions:
            if txn.type in counts:
                counts[txn.type] += 1
        blocks = [
            monthly_summary_block(report.stats, today.year, today.month, lang),
            _text(lang, "summary_counts", income=counts["income"], expense=counts["expense"]),
        ]
        alerts = budget_alert_block(report.categories, lang)
        if alerts:
            blocks.append(alerts)
        await self.notifier.send_message(chat_id, render(blocks))

    async def _recent(self, chat_id: int, user: User, lang: str) -> None:
        transactions = await self.store.list_recent_transactions(user.id, 5)
        if not transactions:
            await self.notifier.send_message(chat_id, _text(lang, "recent_empty"))
            return
        lines = [_text(lang, "recent_title")]
        for index, txn in enumerate(transactions, start=1):
            emoji = "💵" if txn.type == "income" else "💸"
            day = format_date(local_date(txn.occurred_at, self.tz), lang)
            lines.append(f"{index}. {emoji} {format_currency(abs(txn.amount), lang)} · {txn.description} · {day}")
        await self.notifier.send_message(chat_id, "\n".join(lines), MENU_KEYBOARD)

    async def _subscriptions(self, chat_id: int, user: User, lang: str) -> None:
        candidates = await self.analytics.subscriptions(user.id)
        await self.notifier.send_message(chat_id, subscription_block(candidates, lang))

    # ── Recording ─────────────────────────────────
    async def _resolve_category(self, user: User, type_: str, name: str | None, description: str) -> tuple[int | None, str | None]:
        categories = [c for c in await self.store.list_categories(user.id) if c.type == type_]
        by_name = {c.name.lower(): c for c in categories}

        candidates = [name, guess_category_name(description)]
        for candidate in candidates:
            if candidate and candidate.lower() in by_name:
                category = by_name[candidate.lower()]
                return category.id, category.name

        if type_ == "expense":
            result = await self.categorizer.categorize(description=description)
            category = by_name.get(result.category.lower())
            if category is not None and result.confidence > 0:
                return category.id, category.name
        return None, None

    async def _quick_record(self, chat_id: int, user: User, lang: str, text: str) -> None:
        entry = parse_quick_entry(text)
        if entry is None:
            await self.notifier.send_message(chat_id, _text(lang, "parse_failed"))
            return
        category_id, category_name = await self._resolve_category(user, entry.type, None, entry.description)
        await self.recorder.create_transaction(
            TransactionCreate(
                amount=entry.amount,
                description=entry.description,
                type=entry.type,
                category_id=category_id,
                source="telegram",
                is_verified=True,
            ),
            user,
        )
        logger.info("telegram_quick_record", chat_id=chat_id, amount=entry.amount, type=entry.type)
        await self.notifier.send_message(
            chat_id,
            transaction_message(
                amount=entry.amount, description=entry.description, category=category_name, lang=lang
            ),
            MENU_KEYBOARD,
        )

    async def _on_photo(self, chat_id: int, lang: str, photos: list[dict]) -> None:
        largest = max(photos, key=lambda p: p.get("file_size") or p.get("width", 0) * p.get("height", 0))
        content = await self.notifier.download_file(largest["file_id"])
        if content is None:
            await self.notifier.send_message(chat_id, _text(lang, "download_failed"))
            return
        await self._offer_draft(chat_id, lang, await self.scanner.scan(content))

    async def _on_voice(self, chat_id: int, lang: str, voice: dict) -> None:
        content = await self.notifier.download_file(voice["file_id"])
        if content is None:
            await self.notifier.send_message(chat_id, _text(lang, "download_failed"))
            return
        await self._offer_draft(chat_id, lang, await self.voice.extract(content, "voice.ogg"))

    async def _offer_draft(self, chat_id: int, lang: str, draft: TransactionDraft) -> None:
        if draft.is_empty:
            await self.notifier.send_message(chat_id, _text(lang, "extraction_failed"))
            return
        self.drafts.put(chat_id, draft)
        await self.notifier.send_message(
            chat_id,
            transaction_message(
                amount=draft.amount,
                description=draft.description or draft.merchant_name or "-",
                category=draft.category,
                merchant=draft.merchant_name,
                occurred_on=draft.occurred_on,
                draft=True,
                lang=lang,
            ),
            DRAFT_KEYBOARD,
        )

    async def _confirm_draft(self, chat_id: int, user: User, lang: str) -> None:
        draft = self.drafts.pop(chat_id)
        if draft is None:
            await self.notifier.send_message(chat_id, _text(lang, "no_draft"))
            return
        description = draft.description or draft.merchant_name or ("Pemasukan" if draft.type == "income" else "Pengeluaran")
        category_id, category_name = await self._resolve_category(user, draft.type, draft.category, description)
        occurred_at = (
            datetime.combine(draft.occurred_on, time(12, 0), tzinfo=self.tz)
            if draft.occurred_on
            else datetime.now(timezone.utc)
        )
        await self.recorder.create_transaction(
            TransactionCreate(
                amount=draft.amount,
                description=description,
                merchant_name=draft.merchant_name,
                type=draft.type,
                category_id=category_id,
                occurred_at=occurred_at,
                source=draft.source if draft.source in ("ocr", "voice") else "telegram",
                is_verified=True,
            ),
            user,
        )
        logger.info("telegram_draft_confirmed", chat_id=chat_id, amount=draft.amount, source=draft.source)
        await self.notifier.send_message(
            chat_id,
            transaction_message(
                amount=draft.amount,
                description=description,
                category=category_name,
                merchant=draft.merchant_name,
                occurred_on=draft.occurred_on,
                lang=lang,
            ),
            MENU_KEYBOARD,
        )

