"""In-memory fakes for the store and the external adapters."""

from datetime import datetime, timezone
from itertools import count
from types import SimpleNamespace

from monev.schemas.transaction import TransactionDraft
from monev.services.categorizer import CategorizationResult, Categorizer
from monev.services.extraction import ReceiptScanner, VoiceExtractor
from monev.services.llm_provider import LLMProviderBase
from monev.services.narrator import InsightNarrator
from monev.services.notifier import Notifier

_ids = count(1)


def utc(year, month, day, hour=5):
    # 05:00 UTC is midday in Asia/Jakarta
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def make_txn(amount, type_="expense", when=None, *, merchant=None, category_id=None,
             payment_method="transfer", description=None, user_id=1):
    """Transaction-like record. ``amount`` is signed the way the database stores it."""
    return SimpleNamespace(
        id=next(_ids),
        user_id=user_id,
        amount=amount,
        type=type_,
        merchant_name=merchant,
        description=description or merchant or type_,
        category_id=category_id,
        payment_method=payment_method,
        occurred_at=when or utc(2025, 3, 10),
    )


def make_category(id_, name, type_="expense", color="#3b82f6"):
    return SimpleNamespace(id=id_, name=name, type=type_, color=color, is_system=True, user_id=None)


def make_budget(id_, category_id, amount, month=3, year=2025):
    return SimpleNamespace(id=id_, category_id=category_id, amount=amount, month=month, year=year, category=None)


class FakeStore:
    """In-memory stand-in for FinanceStore. ``failing`` names methods that raise."""

    def __init__(
        self,
        transactions=(),
        budgets=(),
        goals=(),
        categories=(),
        investments=(),
        users=(),
        settings=None,
        failing=(),
        failing_users=(),
    ):
        self.transactions = list(transactions)
        self.budgets = list(budgets)
        self.goals = list(goals)
        self.categories = list(categories)
        self.investments = list(investments)
        self.users = list(users)
        self.settings = dict(settings or {})
        self.failing = set(failing)
        self.failing_users = set(failing_users)
        self.calls: list[str] = []

    def _check(self, method: str, user_id: int | None = None) -> None:
        self.calls.append(method)
        if method in self.failing or user_id in self.failing_users:
            raise RuntimeError(f"{method} unavailable")

    async def list_transactions(self, user_id, start=None, end=None):
        self._check("list_transactions", user_id)
        return sorted(
            (
                t for t in self.transactions
                if t.user_id == user_id
                and (start is None or t.occurred_at >= start)
                and (end is None or t.occurred_at < end)
            ),
            key=lambda t: t.occurred_at,
        )

    async def list_recent_transactions(self, user_id, limit=5):
        self._check("list_recent_transactions", user_id)
        rows = [t for t in self.transactions if t.user_id == user_id]
        return sorted(rows, key=lambda t: t.occurred_at, reverse=True)[:limit]

    async def list_budgets(self, user_id, month, year):
        self._check("list_budgets", user_id)
        return [b for b in self.budgets if b.month == month and b.year == year]

    async def list_goals(self, user_id):
        self._check("list_goals", user_id)
        return list(self.goals)

    async def list_categories(self, user_id):
        self._check("list_categories", user_id)
        return list(self.categories)

    async def list_investments(self, user_id):
        self._check("list_investments", user_id)
        return list(self.investments)

    async def totals_by_type(self, user_id, end=None):
        self._check("totals_by_type", user_id)
        totals: dict[str, int] = {}
        for t in self.transactions:
            if t.user_id == user_id and (end is None or t.occurred_at < end):
                totals[t.type] = totals.get(t.type, 0) + abs(t.amount)
        return totals

    async def get_user_by_chat_id(self, chat_id):
        self._check("get_user_by_chat_id")
        return next((u for u in self.users if u.telegram_chat_id == chat_id), None)

    async def get_settings(self, user_id):
        return self.settings.get(user_id)

    async def list_notifiable_users(self):
        self._check("list_notifiable_users")
        return [(u, self.settings.get(u.id)) for u in self.users if u.telegram_chat_id is not None]


class FakeNotifier(Notifier):
    configured = True

    def __init__(self, files=None, deliver=True):
        self.sent: list[tuple[int, str, dict | None]] = []
        self.answered: list[str] = []
        self.files = files or {}
        self.downloads: list[str] = []
        self.deliver = deliver

    async def send_message(self, recipient_id, text, reply_markup=None):
        self.sent.append((recipient_id, text, reply_markup))
        return self.deliver

    async def answer_callback(self, callback_query_id, text=None):
        self.answered.append(callback_query_id)
        return True

    async def download_file(self, file_id):
        self.downloads.append(file_id)
        return self.files.get(file_id)

    @property
    def texts(self) -> list[str]:
        return [text for _, text, _ in self.sent]


class FakeCategorizer(Categorizer):
    def __init__(self, category="Lainnya", confidence=0.0):
        self.result = CategorizationResult(category=category, confidence=confidence, reason="fake")
        self.calls: list[tuple[str | None, str | None]] = []

    async def categorize(self, merchant_name=None, description=None):
        self.calls.append((merchant_name, description))
        return self.result


class FakeNarrator(InsightNarrator):
    def __init__(self, text="Pengeluaran bulan ini terkendali."):
        self.text = text

    async def narrate(self, report, health, lang):
        return self.text




class EmptyScanner(ReceiptScanner):
    async def scan(self, image, content_type="image/jpeg"):
        return TransactionDraft(source="ocr")


class EmptyVoice(VoiceExtractor):
    async def extract(self, audio, filename="voice.ogg"):
        return TransactionDraft(source="voice")


class FakeProvider(LLMProviderBase):
    """Returns ``text`` for every chat call and records what it was sent."""

    model = "fake-model"

    def __init__(self, text=""):
        self.text = text
        self.calls = []

    async def chat(self, system_prompt, messages, temperature=0.3, json_mode=False):
        self.calls.append((system_prompt, messages))
        return self.text

    async def is_available(self):
        return True
