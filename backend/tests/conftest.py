"""Shared test fixtures."""

from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

from fakes import EmptyScanner, EmptyVoice, FakeCategorizer, FakeNarrator, FakeNotifier, FakeStore
from monev.api import deps
from monev.main import app
from monev.services.telegram_bot import DraftStore


@pytest.fixture
def user():
    return SimpleNamespace(id=1, email="budi@example.com", full_name="Budi", telegram_chat_id=42, is_active=True)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


async def _no_db():
    yield None


@pytest.fixture
async def client(store, notifier, user):
    """Async test client with external dependencies replaced by fakes."""
    app.dependency_overrides[deps.get_db] = _no_db
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_notifier] = lambda: notifier
    app.dependency_overrides[deps.get_narrator] = lambda: FakeNarrator()
    app.dependency_overrides[deps.get_categorizer] = lambda: FakeCategorizer("Hiburan", 0.92)
    app.dependency_overrides[deps.get_draft_store] = DraftStore
    app.dependency_overrides[deps.get_receipt_scanner] = EmptyScanner
    app.dependency_overrides[deps.get_voice_extractor] = EmptyVoice
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def auth_client(client, user):
    """Client whose requests are authenticated as ``user``."""
    app.dependency_overrides[deps.get_current_user] = lambda: user
    yield client
