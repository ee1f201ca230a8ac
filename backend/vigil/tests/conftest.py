"""
Pytest configuration for engine tests.

Everything here runs in memory: a controllable clock drives the window
store TTLs, and the ledger is a dict of HistoricalRecords.
"""

from datetime import datetime, timezone
from typing import Dict, List

import pytest

from vigil.scorer import HistorySource
from vigil.types import HistoricalRecord, Submission
from vigil.window import InMemoryWindowStore


def pytest_configure(config):
    """Register the asyncio marker for plain pytest runs."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test."
    )


START = 1_700_000_000.0  # 2023-11-14T22:13:20Z


class FakeClock:
    """Seconds since epoch, advanced by hand."""

    def __init__(self, start: float = START):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

    @property
    def datetime(self) -> datetime:
        return datetime.fromtimestamp(self.now, tz=timezone.utc)


class FakeHistory(HistorySource):
    """Ledger read side backed by a dict."""

    def __init__(self):
        self.records: Dict[str, List[HistoricalRecord]] = {}
        self.calls = 0

    async def fetch_history(self, worker_id: str) -> List[HistoricalRecord]:
        self.calls += 1
        return list(self.records.get(worker_id, []))

    def add(self, worker_id: str, duration: int, recorded_at: datetime, size_bytes: int = 500_000):
        self.records.setdefault(worker_id, []).append(HistoricalRecord(
            worker_id=worker_id,
            duration=duration,
            size_bytes=size_bytes,
            recorded_at=recorded_at,
            status="New",
        ))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryWindowStore(clock=clock)


@pytest.fixture
def history():
    return FakeHistory()


@pytest.fixture
def make_submission(clock):
    """Factory: submission received at the clock's current time."""
    def _make(
        worker_id: str = "42",
        fingerprint: str = "AgAD-1",
        duration: int = 10,
        size_bytes: int = 500_000,
        **kwargs,
    ) -> Submission:
        return Submission(
            worker_id=worker_id,
            fingerprint=fingerprint,
            duration=duration,
            size_bytes=size_bytes,
            received_at=clock.datetime,
            **kwargs,
        )
    return _make
