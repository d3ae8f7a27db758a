"""
Shared fixtures.

No test talks to Gemini or writes outside tmp_path: extractor and
assistant tests use the fake models defined here.
"""

import datetime as dt
from decimal import Decimal
from types import SimpleNamespace

import pytest

from livetax.config import AppSettings, get_settings
from livetax.models.transaction import (
    PendingTransaction,
    Transaction,
    TransactionCategory,
    TransactionSource,
    TransactionType,
)
from livetax.services.storage import InMemoryStateStorage
from livetax.state import AppState


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Fresh settings per test, files under tmp_path, a dummy API key."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setenv("LIVETAX_STATE_FILE", str(tmp_path / "state.json"))
    monkeypatch.setenv("LIVETAX_AUDIT_LOG_FILE", str(tmp_path / "audit.jsonl"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_transaction():
    """Factory for permanent transactions with sensible defaults."""

    def _make(
        amount="1000",
        type_=TransactionType.INCOME,
        category=TransactionCategory.SALARY_INCOME,
        date=dt.date(2024, 4, 15),
        description="Monthly salary",
        source=TransactionSource.MANUAL,
        has_receipt=False,
    ) -> Transaction:
        return Transaction(
            date=date,
            description=description,
            amount=Decimal(amount),
            type=type_,
            category=category,
            source=source,
            has_receipt=has_receipt,
        )

    return _make


@pytest.fixture
def make_pending():
    """Factory for staged candidates."""

    def _make(
        description="Basic Pay",
        amount="50000",
        type_=TransactionType.INCOME,
        category=TransactionCategory.SALARY_INCOME,
        date=dt.date(2024, 4, 30),
    ) -> PendingTransaction:
        return PendingTransaction(
            date=date,
            description=description,
            amount=Decimal(amount),
            type=type_,
            category=category,
            document_id="payslip_april.pdf",
        )

    return _make


@pytest.fixture
def storage():
    return InMemoryStateStorage()


@pytest.fixture
def app_state(storage):
    return AppState(storage=storage, settings=AppSettings())


# =============================================================================
# GEMINI FAKES
# =============================================================================

def gemini_response(text, finish_reason="STOP"):
    """Shape of a generate_content response, as far as the extractor reads it."""
    part = SimpleNamespace(text=text)
    candidate = SimpleNamespace(
        finish_reason=SimpleNamespace(name=finish_reason),
        content=SimpleNamespace(parts=[part] if text is not None else []),
    )
    return SimpleNamespace(candidates=[candidate])


class FakeGenerativeModel:
    """Returns queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses):
        self._responses = list(responses)
        self.calls = []

    async def generate_content_async(self, parts):
        self.calls.append(parts)
        response = self._responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


class FakeChat:
    def __init__(self, model, history):
        self._model = model
        self.history = history

    async def send_message_async(self, message):
        self._model.sent.append(message)
        if isinstance(self._model.reply, BaseException):
            raise self._model.reply
        return SimpleNamespace(text=self._model.reply)


class FakeChatModel:
    def __init__(self, reply="You can still invest ₹50,000 under 80C."):
        self.reply = reply
        self.histories = []
        self.sent = []

    def start_chat(self, history):
        self.histories.append(history)
        return FakeChat(self, history)


@pytest.fixture
def fake_chat_model():
    return FakeChatModel()
