"""
Pytest configuration for service tests.

Redis, PostgreSQL and the Bot API are replaced by mocks or in-memory
fakes; nothing here needs a running server.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from models.domain.submission import LedgerEntry
from services.telegram_client import TelegramClient
from vigil.scorer import HistorySource
from vigil.types import HistoricalRecord, Submission


def pytest_configure(config):
    """Register the asyncio marker for plain pytest runs."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test."
    )


RECEIVED_AT = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


class MemoryLedger(HistorySource):
    """Append/read ledger held in a list, ids assigned on append."""

    def __init__(self):
        self.entries: List[LedgerEntry] = []
        self.fail_with: Optional[Exception] = None

    async def append(self, entry: LedgerEntry) -> LedgerEntry:
        if self.fail_with is not None:
            raise self.fail_with
        entry.id = len(self.entries) + 1
        self.entries.append(entry)
        return entry

    async def fetch_history(self, worker_id: str) -> List[HistoricalRecord]:
        return [e.to_historical() for e in self.entries if e.worker_id == worker_id]


@pytest.fixture
def ledger():
    return MemoryLedger()


@pytest.fixture
def telegram():
    """TelegramClient double; every Bot API call is an AsyncMock."""
    client = MagicMock(spec=TelegramClient)
    client.send_message = AsyncMock(return_value={'message_id': 1})
    client.forward_message = AsyncMock(return_value={'message_id': 2})
    client.answer_callback_query = AsyncMock(return_value=True)
    client.set_webhook = AsyncMock(return_value=True)
    return client


@pytest.fixture
def submission():
    def _make(**overrides) -> Submission:
        fields: Dict = dict(
            worker_id="42",
            fingerprint="AgADuniq",
            duration=10,
            size_bytes=512_000,
            received_at=RECEIVED_AT,
            file_id="DQACAgIAAxk",
            username="alice",
            display_name="Alice",
            chat_id=42,
            message_id=7,
        )
        fields.update(overrides)
        return Submission(**fields)
    return _make


@pytest.fixture
def video_note_message():
    """Telegram message dict carrying a video note."""
    def _make(user_id: int = 42, **video_note) -> dict:
        note = {
            'file_id': "DQACAgIAAxk",
            'file_unique_id': "AgADuniq",
            'duration': 10,
            'length': 240,
            'file_size': 512_000,
        }
        note.update(video_note)
        return {
            'message_id': 7,
            'date': int(RECEIVED_AT.timestamp()),
            'chat': {'id': user_id, 'type': 'private'},
            'from': {'id': user_id, 'is_bot': False, 'first_name': "Alice", 'username': "alice"},
            'video_note': note,
        }
    return _make
