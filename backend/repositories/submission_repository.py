"""
Submission Repository - PostgreSQL storage for the submission ledger

Storage: PostgreSQL (submissions table, append-only)

The engine reads per-worker history through fetch_history(); the
submission worker appends one row per decided submission; reporting
reads aggregates. Driver errors surface as LedgerError so callers see
one failure type regardless of what broke.
"""
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Optional, List

import asyncpg

from models.domain.submission import LedgerEntry
from vigil.errors import LedgerError
from vigil.scorer import HistorySource
from vigil.types import HistoricalRecord

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS submissions (
        id BIGSERIAL PRIMARY KEY,
        worker_id TEXT NOT NULL,
        username TEXT NOT NULL,
        file_id TEXT NOT NULL,
        fingerprint TEXT NOT NULL,
        size_bytes BIGINT NOT NULL,
        duration INTEGER NOT NULL,
        status TEXT NOT NULL,
        forwarded BOOLEAN NOT NULL DEFAULT FALSE,
        anomalies TEXT[] NOT NULL DEFAULT '{}',
        recorded_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    CREATE INDEX IF NOT EXISTS idx_submissions_worker
        ON submissions (worker_id, recorded_at);
    CREATE INDEX IF NOT EXISTS idx_submissions_recorded_at
        ON submissions (recorded_at);
"""

ENTRY_COLUMNS = """
    id, worker_id, username, file_id, fingerprint, size_bytes, duration,
    status, forwarded, anomalies, recorded_at
"""


def _row_to_entry(row) -> LedgerEntry:
    return LedgerEntry(
        id=row['id'],
        worker_id=row['worker_id'],
        username=row['username'],
        file_id=row['file_id'],
        fingerprint=row['fingerprint'],
        size_bytes=row['size_bytes'],
        duration=row['duration'],
        status=row['status'],
        forwarded=bool(row['forwarded']),
        anomalies=list(row['anomalies'] or []),
        recorded_at=row['recorded_at'],
    )


class SubmissionRepository(HistorySource):
    """
    Repository for LedgerEntry rows

    Append-only from the application's point of view: there is no
    update or delete.
    """

    def __init__(self, db_pool: asyncpg.Pool):
        self.db_pool = db_pool

    @asynccontextmanager
    async def _connection(self, what: str):
        try:
            async with self.db_pool.acquire() as conn:
                yield conn
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"Ledger {what} failed: {e}")
            raise LedgerError(f"ledger {what} failed: {e}") from e

    async def ensure_schema(self) -> None:
        """Create the submissions table and indexes if missing"""
        async with self._connection("ensure_schema") as conn:
            await conn.execute(SCHEMA_SQL)

    # =========================================================================
    # WRITE
    # =========================================================================

    async def append(self, entry: LedgerEntry) -> LedgerEntry:
        """
        Append a ledger row.

        Args:
            entry: Row to insert (id is assigned by the database)

        Returns:
            The same entry with id set
        """
        async with self._connection("append") as conn:
            row = await conn.fetchrow("""
                INSERT INTO submissions (
                    worker_id, username, file_id, fingerprint, size_bytes,
                    duration, status, forwarded, anomalies, recorded_at
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                RETURNING id
            """,
                entry.worker_id,
                entry.username,
                entry.file_id,
                entry.fingerprint,
                entry.size_bytes,
                entry.duration,
                entry.status,
                entry.forwarded,
                entry.anomalies,
                entry.recorded_at,
            )

        entry.id = row['id']
        logger.info(f"Ledger row {entry.id}: worker {entry.worker_id} {entry.status}")
        return entry

    # =========================================================================
    # READ - engine
    # =========================================================================

    async def fetch_history(self, worker_id: str) -> List[HistoricalRecord]:
        """All past submissions of one worker, oldest first"""
        async with self._connection("fetch_history") as conn:
            rows = await conn.fetch(f"""
                SELECT {ENTRY_COLUMNS}
                FROM submissions
                WHERE worker_id = $1
                ORDER BY recorded_at, id
            """, worker_id)

        return [_row_to_entry(row).to_historical() for row in rows]

    # =========================================================================
    # READ - reporting
    # =========================================================================

    async def count_all(self) -> int:
        async with self._connection("count_all") as conn:
            return await conn.fetchval("SELECT COUNT(*) FROM submissions")

    async def count_duplicates(self) -> int:
        async with self._connection("count_duplicates") as conn:
            return await conn.fetchval("""
                SELECT COUNT(*) FROM submissions WHERE status LIKE 'Duplicate%'
            """)

    async def count_with_anomalies(self) -> int:
        async with self._connection("count_with_anomalies") as conn:
            return await conn.fetchval("""
                SELECT COUNT(*) FROM submissions WHERE cardinality(anomalies) > 0
            """)

    async def count_on_day(self, day: date, tz_name: str) -> dict:
        """
        Submissions recorded on a local calendar day.

        Returns:
            {'total': int, 'anomalies': int}
        """
        async with self._connection("count_on_day") as conn:
            row = await conn.fetchrow("""
                SELECT COUNT(*) AS total,
                       COUNT(*) FILTER (WHERE cardinality(anomalies) > 0) AS anomalies
                FROM submissions
                WHERE (recorded_at AT TIME ZONE $2)::date = $1
            """, day, tz_name)

        return {'total': row['total'], 'anomalies': row['anomalies']}

    async def search(self, query: str, limit: int = 5) -> List[LedgerEntry]:
        """Rows whose username or worker id contains query (case-sensitive)"""
        async with self._connection("search") as conn:
            rows = await conn.fetch(f"""
                SELECT {ENTRY_COLUMNS}
                FROM submissions
                WHERE strpos(username, $1) > 0 OR strpos(worker_id, $1) > 0
                ORDER BY id
                LIMIT $2
            """, query, limit)

        return [_row_to_entry(row) for row in rows]

    async def worker_summary(self, worker_id: str, since: datetime) -> Optional[dict]:
        """
        Per-worker totals.

        Returns:
            {'total', 'recent', 'recent_avg_duration'} or None if the worker
            never submitted
        """
        async with self._connection("worker_summary") as conn:
            row = await conn.fetchrow("""
                SELECT COUNT(*) AS total,
                       COUNT(*) FILTER (WHERE recorded_at > $2) AS recent,
                       AVG(duration) FILTER (WHERE recorded_at > $2) AS recent_avg_duration
                FROM submissions
                WHERE worker_id = $1
            """, worker_id, since)

        if not row or not row['total']:
            return None

        avg = row['recent_avg_duration']
        return {
            'total': row['total'],
            'recent': row['recent'],
            'recent_avg_duration': float(avg) if avg is not None else 0.0,
        }
