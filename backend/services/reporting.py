"""
Reporting - read-side aggregation over the submission ledger

Backs the admin commands (/stats, /find, /panel buttons), the worker
command (/my_stats) and the scheduled daily summary. Nothing here
writes; every figure is computed from the ledger on demand.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import List, Optional

from models.domain.submission import LedgerEntry
from repositories.submission_repository import SubmissionRepository
from services.notifications import escape_markdown

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 5
WORKER_STATS_DAYS = 7

FIND_USAGE = "Please enter a word or ID to search for"
FIND_PROMPT = "🔍 Please type the worker ID or username you are looking for:"
NO_RESULTS = "No results found"
NO_SUBMISSIONS = "📭 You have not sent any videos yet"
MONTHLY_REPORT_UNAVAILABLE = "📤 The monthly report is not available yet"

PANEL_KEYBOARD = {
    'inline_keyboard': [
        [{'text': "📊 Today's stats", 'callback_data': 'stats_today'}],
        [{'text': "📈 Monthly report", 'callback_data': 'monthly_report'}],
        [{'text': "🔍 Search videos", 'callback_data': 'find_start'}],
    ]
}


@dataclass
class OverallStats:
    total: int
    today: int
    duplicates: int
    anomalies: int


@dataclass
class WorkerStats:
    total: int
    last_week: int
    avg_duration: int  # seconds, rounded


@dataclass
class DailySummary:
    day: date
    videos: int
    anomalies: int


class ReportingService:
    """
    Aggregates ledger rows for reports.

    Args:
        repo: Submission ledger
        tz: Timezone that defines "today"
        tz_name: IANA name of tz, passed to PostgreSQL
    """

    def __init__(self, repo: SubmissionRepository, tz: tzinfo, tz_name: str):
        self.repo = repo
        self.tz = tz
        self.tz_name = tz_name

    def local_day(self, now: datetime) -> date:
        return now.astimezone(self.tz).date()

    async def overall_stats(self, now: datetime) -> OverallStats:
        today = await self.repo.count_on_day(self.local_day(now), self.tz_name)
        return OverallStats(
            total=await self.repo.count_all(),
            today=today['total'],
            duplicates=await self.repo.count_duplicates(),
            anomalies=await self.repo.count_with_anomalies(),
        )

    async def today_count(self, now: datetime) -> int:
        today = await self.repo.count_on_day(self.local_day(now), self.tz_name)
        return today['total']

    async def search(self, query: str) -> List[LedgerEntry]:
        return await self.repo.search(query, limit=SEARCH_LIMIT)

    async def worker_stats(self, worker_id: str, now: datetime) -> Optional[WorkerStats]:
        summary = await self.repo.worker_summary(worker_id, now - timedelta(days=WORKER_STATS_DAYS))
        if summary is None:
            return None
        return WorkerStats(
            total=summary['total'],
            last_week=summary['recent'],
            avg_duration=round(summary['recent_avg_duration']),
        )

    async def daily_summary(self, day: date) -> DailySummary:
        counts = await self.repo.count_on_day(day, self.tz_name)
        return DailySummary(day=day, videos=counts['total'], anomalies=counts['anomalies'])


# =========================================================================
# MESSAGE RENDERING
# =========================================================================

def stats_text(stats: OverallStats) -> str:
    return (
        f"📊 *Bot statistics*\n\n"
        f"📅 Today: *{stats.today}* videos\n"
        f"🔄 Duplicates: *{stats.duplicates}*\n"
        f"⚠️ Anomalies: *{stats.anomalies}*\n"
        f"📈 Total: *{stats.total}* videos"
    )


def search_text(entries: List[LedgerEntry], tz: Optional[tzinfo] = None) -> str:
    text = f"🔍 *Search results* ({len(entries)}):\n\n"
    for entry in entries:
        recorded = entry.recorded_at.astimezone(tz) if tz else entry.recorded_at
        text += (
            f"👤 {escape_markdown(entry.username)} (ID: {entry.worker_id})\n"
            f"📅 {recorded.strftime('%Y-%m-%d %H:%M:%S')}\n"
            f"🆔 {escape_markdown(entry.fingerprint)}\n\n"
        )
    return text


def worker_stats_text(stats: WorkerStats) -> str:
    return (
        f"📊 *Your statistics*\n\n"
        f"🎥 Total videos: *{stats.total}*\n"
        f"📅 Last {WORKER_STATS_DAYS} days: *{stats.last_week}*\n"
        f"⏱ Average duration: *{stats.avg_duration}* seconds"
    )


def today_text(count: int) -> str:
    return f"📅 Videos today: {count}"


def daily_summary_text(summary: DailySummary) -> str:
    return (
        f"🌙 *Daily report*\n\n"
        f"📅 Date: {summary.day.isoformat()}\n"
        f"🎥 Videos: {summary.videos}\n"
        f"⚠️ Anomalies: {summary.anomalies}"
    )
