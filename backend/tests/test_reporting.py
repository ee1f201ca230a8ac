"""
Tests for ReportingService and the report renderers.
"""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest

from models.domain.submission import LedgerEntry
from repositories.submission_repository import SubmissionRepository
from services.reporting import (
    DailySummary,
    OverallStats,
    ReportingService,
    WorkerStats,
    daily_summary_text,
    search_text,
    stats_text,
    worker_stats_text,
)

TASHKENT = ZoneInfo("Asia/Tashkent")
NOW = datetime(2026, 3, 2, 15, 30, tzinfo=timezone.utc)  # 20:30 in Tashkent


@pytest.fixture
def repo():
    repo = MagicMock(spec=SubmissionRepository)
    repo.count_all = AsyncMock(return_value=120)
    repo.count_duplicates = AsyncMock(return_value=14)
    repo.count_with_anomalies = AsyncMock(return_value=9)
    repo.count_on_day = AsyncMock(return_value={'total': 6, 'anomalies': 2})
    repo.search = AsyncMock(return_value=[])
    repo.worker_summary = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def service(repo):
    return ReportingService(repo, TASHKENT, "Asia/Tashkent")


# =============================================================================
# Aggregation
# =============================================================================

class TestReportingService:

    def test_local_day_uses_configured_zone(self, service):
        late_utc = datetime(2026, 3, 2, 20, 0, tzinfo=timezone.utc)  # 01:00 next day locally

        assert service.local_day(late_utc) == date(2026, 3, 3)

    @pytest.mark.asyncio
    async def test_overall_stats(self, service, repo):
        stats = await service.overall_stats(NOW)

        assert stats == OverallStats(total=120, today=6, duplicates=14, anomalies=9)
        repo.count_on_day.assert_awaited_once_with(date(2026, 3, 2), "Asia/Tashkent")

    @pytest.mark.asyncio
    async def test_today_count(self, service):
        assert await service.today_count(NOW) == 6

    @pytest.mark.asyncio
    async def test_search_is_capped(self, service, repo):
        await service.search("ali")

        repo.search.assert_awaited_once_with("ali", limit=5)

    @pytest.mark.asyncio
    async def test_worker_stats_none_for_unknown_worker(self, service, repo):
        assert await service.worker_stats("42", NOW) is None

        since = repo.worker_summary.call_args[0][1]
        assert (NOW - since).days == 7

    @pytest.mark.asyncio
    async def test_worker_stats_rounds_average(self, service, repo):
        repo.worker_summary.return_value = {'total': 30, 'recent': 4, 'recent_avg_duration': 12.6}

        stats = await service.worker_stats("42", NOW)

        assert stats == WorkerStats(total=30, last_week=4, avg_duration=13)

    @pytest.mark.asyncio
    async def test_daily_summary(self, service):
        summary = await service.daily_summary(date(2026, 3, 2))

        assert summary == DailySummary(day=date(2026, 3, 2), videos=6, anomalies=2)


# =============================================================================
# Rendering
# =============================================================================

def test_stats_text():
    text = stats_text(OverallStats(total=120, today=6, duplicates=14, anomalies=9))

    assert "📅 Today: *6* videos" in text
    assert "🔄 Duplicates: *14*" in text
    assert "⚠️ Anomalies: *9*" in text
    assert "📈 Total: *120* videos" in text


def test_search_text_lists_entries_in_local_time():
    entry = LedgerEntry(
        worker_id="42",
        username="alice_w",
        file_id="DQAC",
        fingerprint="AgAD",
        size_bytes=1,
        duration=10,
        status="New",
        forwarded=False,
        recorded_at=datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc),
        id=1,
    )

    text = search_text([entry], TASHKENT)

    assert text.startswith("🔍 *Search results* (1):")
    assert "👤 alice\\_w (ID: 42)" in text
    assert "📅 2026-03-02 14:30:00" in text
    assert "🆔 AgAD" in text


def test_worker_stats_text():
    text = worker_stats_text(WorkerStats(total=30, last_week=4, avg_duration=13))

    assert "🎥 Total videos: *30*" in text
    assert "📅 Last 7 days: *4*" in text
    assert "⏱ Average duration: *13* seconds" in text


def test_daily_summary_text():
    text = daily_summary_text(DailySummary(day=date(2026, 3, 2), videos=6, anomalies=2))

    assert "📅 Date: 2026-03-02" in text
    assert "🎥 Videos: 6" in text
    assert "⚠️ Anomalies: 2" in text
