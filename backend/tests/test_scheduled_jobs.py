"""Scheduled job tests: subscription check and daily recap."""

from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from fakes import FakeNotifier, FakeStore, make_txn, utc
from monev.services.analytics_service import AnalyticsService
from monev.services.recurring_detector import RecurringChargeCandidate
from monev.services.scheduled_jobs import run_daily_recap, run_subscription_check

NETFLIX = RecurringChargeCandidate(
    merchant="Netflix", amount=120000, frequency=3, last_date=date(2025, 3, 6), cadence="monthly", monthly_cost=121750
)


def linked(user_id, chat_id):
    return SimpleNamespace(id=user_id, telegram_chat_id=chat_id, is_active=True)


class StubAnalytics:
    tz = timezone.utc

    def __init__(self, by_user, failing=()):
        self.by_user = by_user
        self.failing = set(failing)

    async def subscriptions(self, user_id, today=None, months=None):
        if user_id in self.failing:
            raise RuntimeError("store down")
        return self.by_user.get(user_id, [])


async def test_subscription_check_reports_only_users_with_findings():
    store = FakeStore(users=[linked(1, 100), linked(2, 200), linked(3, None)])
    notifier = FakeNotifier()

    results = await run_subscription_check(store, StubAnalytics({1: [NETFLIX]}), notifier)

    assert results == [
        {"user_id": 1, "subscriptions_found": 1, "delivered": True},
        {"user_id": 2, "subscriptions_found": 0, "delivered": False},
    ]
    assert len(notifier.sent) == 1
    assert notifier.sent[0][0] == 100
    assert "Netflix" in notifier.sent[0][1]


async def test_subscription_check_isolates_failures():
    store = FakeStore(users=[linked(1, 100), linked(2, 200)])
    notifier = FakeNotifier()

    results = await run_subscription_check(
        store, StubAnalytics({2: [NETFLIX]}, failing={1}), notifier
    )

    assert results[0]["error"] == "store down"
    assert results[1]["delivered"] is True


async def test_subscription_check_uses_user_language():
    store = FakeStore(users=[linked(1, 100)], settings={1: SimpleNamespace(language="en", daily_recap_enabled=True)})
    notifier = FakeNotifier()

    await run_subscription_check(store, StubAnalytics({1: [NETFLIX]}), notifier)

    assert "Found 1 recurring charges" in notifier.texts[0]


@pytest.fixture
def recap_store():
    return FakeStore(
        transactions=[
            make_txn(6000000, "income", utc(2025, 3, 1)),
            make_txn(-50000, "expense", utc(2025, 3, 10), payment_method="cash"),
            make_txn(-20000, "expense", utc(2025, 3, 10), user_id=2),
        ],
        users=[linked(1, 100), linked(2, 200), linked(3, 300)],
        settings={2: SimpleNamespace(language="id", daily_recap_enabled=False)},
    )


async def test_daily_recap(recap_store):
    notifier = FakeNotifier()
    adjusted = []

    async def adjust(user_id, rate):
        adjusted.append(user_id)
        return []

    results = await run_daily_recap(
        recap_store,
        AnalyticsService(recap_store),
        notifier,
        adjust_goals=adjust,
        now=datetime(2025, 3, 10, 14, tzinfo=timezone.utc),
    )

    assert [r["user_id"] for r in results] == [1, 3]
    assert results[0] == {"user_id": 1, "delivered": True, "expense": 50000}
    assert adjusted == []
    text = notifier.sent[0][1]
    assert "Rekap Harian" in text
    assert "Kamu hemat Rp 150.000" in text
    assert "Idle Cash Optimizer" in text
    assert "Cash Burn" not in text


async def test_daily_recap_adjusts_goals_on_first_of_month(recap_store):
    notifier = FakeNotifier()

    async def adjust(user_id, rate):
        return [("Dana Darurat", 10000000, 10050000)] if user_id == 1 else []

    results = await run_daily_recap(
        recap_store,
        AnalyticsService(recap_store),
        notifier,
        adjust_goals=adjust,
        now=datetime(2025, 3, 1, 14, tzinfo=timezone.utc),
    )

    assert results[0]["goals_adjusted"] == 1
    assert results[1]["goals_adjusted"] == 0
    assert "Dana Darurat" in notifier.sent[0][1]


async def test_daily_recap_isolates_failures(recap_store):
    recap_store.failing_users = {1}
    notifier = FakeNotifier()

    results = await run_daily_recap(
        recap_store,
        AnalyticsService(recap_store),
        notifier,
        now=datetime(2025, 3, 10, 14, tzinfo=timezone.utc),
    )

    assert "error" in results[0]
    assert results[1]["delivered"] is True
    assert [chat for chat, _, _ in notifier.sent] == [300]
