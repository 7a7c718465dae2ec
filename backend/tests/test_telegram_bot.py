"""Telegram bot parsing and dispatch tests."""

from datetime import date
from types import SimpleNamespace

import pytest

from fakes import FakeCategorizer, FakeNotifier, FakeStore, make_category, make_txn, utc
from monev.schemas.transaction import TransactionDraft
from monev.services.analytics_service import AnalyticsService
from monev.services.extraction import ReceiptScanner, VoiceExtractor
from monev.services.recurring_detector import RecurringChargeCandidate
from monev.services.telegram_bot import (
    DRAFT_KEYBOARD,
    MENU_KEYBOARD,
    DraftStore,
    TelegramBot,
    guess_category_name,
    parse_quick_entry,
)

CHAT_ID = 42
CATEGORIES = [
    make_category(1, "Makan & Minuman"),
    make_category(2, "Gaji", type_="income"),
    make_category(3, "Transportasi"),
    make_category(4, "Belanja"),
]


class Recorder:
    def __init__(self):
        self.created = []

    async def create_transaction(self, data, user):
        self.created.append((data, user))
        return {"id": len(self.created)}


class FixedScanner(ReceiptScanner):
    def __init__(self, draft):
        self.draft = draft

    async def scan(self, image, content_type="image/jpeg"):
        return self.draft


class FixedVoice(VoiceExtractor):
    def __init__(self, draft):
        self.draft = draft

    async def extract(self, audio, filename="voice.ogg"):
        return self.draft


class StubAnalytics:
    def __init__(self, candidates=()):
        self.candidates = list(candidates)

    async def subscriptions(self, user_id, today=None, months=None):
        return self.candidates


def message(text=None, chat_id=CHAT_ID, **extra):
    body = {"chat": {"id": chat_id}, "from": {"first_name": "Budi"}, **extra}
    if text is not None:
        body["text"] = text
    return {"update_id": 1, "message": body}


def callback(data, chat_id=CHAT_ID):
    return {"update_id": 2, "callback_query": {"id": "cb-1", "data": data, "message": {"chat": {"id": chat_id}}}}


@pytest.fixture
def linked_user():
    return SimpleNamespace(id=1, telegram_chat_id=CHAT_ID, full_name="Budi", is_active=True)


@pytest.fixture
def parts(linked_user):
    store = FakeStore(users=[linked_user], categories=CATEGORIES)
    return SimpleNamespace(
        store=store,
        notifier=FakeNotifier(files={"big": b"jpeg-bytes", "voice-1": b"ogg-bytes"}),
        recorder=Recorder(),
        analytics=AnalyticsService(store),
        categorizer=FakeCategorizer("Transportasi", 0.9),
        scanner=FixedScanner(TransactionDraft(amount=75000, merchant_name="Indomaret", category="Belanja", source="ocr")),
        voice=FixedVoice(TransactionDraft(amount=25000, description="parkir", source="voice")),
        drafts=DraftStore(),
    )


@pytest.fixture
def bot(parts):
    return TelegramBot(
        store=parts.store,
        notifier=parts.notifier,
        recorder=parts.recorder,
        analytics=parts.analytics,
        categorizer=parts.categorizer,
        scanner=parts.scanner,
        voice=parts.voice,
        drafts=parts.drafts,
    )


@pytest.mark.parametrize(
    "text, amount, description, type_",
    [
        ("50000 makan siang", 50000, "makan siang", "expense"),
        ("25rb parkir", 25000, "parkir", "expense"),
        ("Rp 1.500.000 gaji", 1500000, "gaji", "income"),
        ("terima transferan 1,5jt", 1500000, "terima transferan", "income"),
        ("kopi 18k", 18000, "kopi", "expense"),
        ("5jt", 5000000, "Pengeluaran", "expense"),
    ],
)
def test_parse_quick_entry(text, amount, description, type_):
    entry = parse_quick_entry(text)

    assert entry is not None
    assert entry.amount == amount
    assert entry.description == description
    assert entry.type == type_


@pytest.mark.parametrize("text", ["makan siang", "0 kopi", ""])
def test_parse_quick_entry_without_amount(text):
    assert parse_quick_entry(text) is None


def test_guess_category_name():
    assert guess_category_name("isi bensin") == "Transportasi"
    assert guess_category_name("bayar listrik") == "Tagihan"
    assert guess_category_name("beli obat di rumah sakit") == "Belanja"
    assert guess_category_name("check up rumah sakit") == "Kesehatan"
    assert guess_category_name("sesuatu") is None


async def test_quick_record_saves_with_keyword_category(bot, parts, linked_user):
    await bot.handle_update(message("50000 makan siang"))

    data, owner = parts.recorder.created[0]
    assert owner is linked_user
    assert data.amount == 50000
    assert data.type == "expense"
    assert data.category_id == 1
    assert data.source == "telegram"
    assert parts.categorizer.calls == []
    chat, text, markup = parts.notifier.sent[-1]
    assert chat == CHAT_ID
    assert "Rp 50.000" in text
    assert markup == MENU_KEYBOARD


async def test_quick_record_income(bot, parts):
    await bot.handle_update(message("5jt gaji bulan ini"))

    data, _ = parts.recorder.created[0]
    assert data.type == "income"
    assert data.amount == 5000000
    assert data.category_id == 2


async def test_quick_record_falls_back_to_ai_category(bot, parts):
    await bot.handle_update(message("100000 xyz"))

    data, _ = parts.recorder.created[0]
    assert data.category_id == 3
    assert parts.categorizer.calls == [(None, "xyz")]


async def test_unparseable_text(bot, parts):
    await bot.handle_update(message("halo bot"))

    assert parts.recorder.created == []
    assert "Format tidak dikenali" in parts.notifier.texts[-1]


async def test_unlinked_chat_gets_link_hint(bot, parts):
    await bot.handle_update(message("50000 kopi", chat_id=99))

    assert parts.recorder.created == []
    assert "99" in parts.notifier.texts[-1]
    assert "belum terhubung" in parts.notifier.texts[-1]


async def test_start_for_unlinked_chat(bot, parts):
    await bot.handle_update(message("/start", chat_id=99))

    assert len(parts.notifier.sent) == 2
    assert "Halo, Budi" in parts.notifier.sent[0][1]
    assert parts.notifier.sent[0][2] == MENU_KEYBOARD
    assert "belum terhubung" in parts.notifier.sent[1][1]


async def test_help_and_unknown_command(bot, parts):
    await bot.handle_update(message("/help@MonevBot"))
    await bot.handle_update(message("/foo"))

    assert "Bantuan" in parts.notifier.texts[0]
    assert "/foo" in parts.notifier.texts[1]


async def test_english_user_gets_english_replies(bot, parts):
    parts.store.settings[1] = SimpleNamespace(language="en")

    await bot.handle_update(message("/help"))

    assert parts.notifier.texts[-1].startswith("❓ Help")


async def test_receipt_photo_becomes_draft_then_saved(bot, parts):
    photos = [{"file_id": "small", "file_size": 10}, {"file_id": "big", "file_size": 1000}]

    await bot.handle_update(message(photo=photos))

    assert parts.notifier.downloads == ["big"]
    assert parts.recorder.created == []
    assert parts.drafts.get(CHAT_ID).amount == 75000
    assert parts.notifier.sent[-1][2] == DRAFT_KEYBOARD
    assert "Cek dulu" in parts.notifier.texts[-1]

    await bot.handle_update(callback("confirm_draft"))

    assert parts.notifier.answered == ["cb-1"]
    data, _ = parts.recorder.created[0]
    assert data.amount == 75000
    assert data.merchant_name == "Indomaret"
    assert data.description == "Indomaret"
    assert data.category_id == 4
    assert data.source == "ocr"
    assert parts.drafts.get(CHAT_ID) is None
    assert parts.notifier.texts[-1].startswith("Transaksi tercatat!")


async def test_draft_keeps_extracted_date(bot, parts):
    parts.scanner.draft = TransactionDraft(amount=30000, description="makan", occurred_on=date(2025, 3, 6), source="ocr")

    await bot.handle_update(message(photo=[{"file_id": "big"}]))
    await bot.handle_update(callback("confirm_draft"))

    data, _ = parts.recorder.created[0]
    assert data.occurred_at.date() == date(2025, 3, 6)


async def test_cancelled_draft_not_saved(bot, parts):
    await bot.handle_update(message(voice={"file_id": "voice-1", "duration": 3}))
    await bot.handle_update(callback("cancel_draft"))
    await bot.handle_update(callback("confirm_draft"))

    assert parts.recorder.created == []
    assert "Draft dibuang" in parts.notifier.texts[-2]
    assert "Tidak ada draft" in parts.notifier.texts[-1]


async def test_unreadable_receipt(bot, parts):
    parts.scanner.draft = TransactionDraft(source="ocr")

    await bot.handle_update(message(photo=[{"file_id": "big"}]))

    assert parts.drafts.get(CHAT_ID) is None
    assert "tidak terbaca" in parts.notifier.texts[-1]


async def test_failed_download(bot, parts):
    await bot.handle_update(message(photo=[{"file_id": "missing"}]))

    assert "tidak bisa diunduh" in parts.notifier.texts[-1]


async def test_recent_lists_latest(bot, parts):
    parts.store.transactions = [
        make_txn(-18000, "expense", utc(2025, 3, 6), description="kopi"),
        make_txn(5000000, "income", utc(2025, 3, 1), description="gaji"),
    ]

    await bot.handle_update(message("/riwayat"))

    text = parts.notifier.texts[-1]
    assert text.startswith("📋 Transaksi terbaru")
    assert "1. 💸 Rp 18.000 · kopi · 6 Mar 2025" in text
    assert "2. 💵 Rp 5.000.000 · gaji" in text


async def test_recent_empty(bot, parts):
    await bot.handle_update(message("/recent"))
    assert "Belum ada transaksi" in parts.notifier.texts[-1]


async def test_balance_command(bot, parts):
    await bot.handle_update(message("/saldo"))

    assert "Ringkasan" in parts.notifier.texts[-1]
    assert parts.notifier.sent[-1][2] == MENU_KEYBOARD


async def test_subscriptions_via_menu_callback(bot, parts):
    bot.analytics = StubAnalytics([
        RecurringChargeCandidate(
            merchant="Netflix", amount=120000, frequency=3, last_date=date(2025, 3, 6),
            cadence="monthly", monthly_cost=121750,
        )
    ])

    await bot.handle_update(callback("subscriptions"))

    assert "Netflix" in parts.notifier.texts[-1]


async def test_failure_reported_to_chat(bot, parts):
    parts.store.failing = {"get_user_by_chat_id"}

    await bot.handle_update(message("50000 kopi"))

    assert parts.notifier.texts[-1] == "❌ Terjadi kesalahan. Silakan coba lagi."


async def test_update_without_chat_ignored(bot, parts):
    await bot.handle_update({"update_id": 3, "inline_query": {"id": "x"}})
    assert parts.notifier.sent == []
