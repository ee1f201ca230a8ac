"""
Anomaly Scorer.

Compares one submission against the worker's full ledger history.
Needs a baseline: with fewer than MIN_HISTORY records nothing is flagged.

Flags (independent, non-exclusive):
- unusual_duration:    |duration - mean(history durations)| > 2s
- too_small_file:      size_bytes < 20000
- too_fast_submission: >= 3 history records within 30 minutes of now

History is read fresh for every submission; nothing is cached here.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Sequence, Tuple

from .deadline import Deadline, bounded
from .errors import LedgerTimeout
from .types import AnomalyLabel, HistoricalRecord, ordered_anomalies

logger = logging.getLogger(__name__)

MIN_HISTORY = 5
DURATION_DEVIATION_SECONDS = 2
MIN_FILE_SIZE_BYTES = 20000
FAST_WINDOW = timedelta(minutes=30)
FAST_MIN_RECORDS = 3


class HistorySource(ABC):
    """Read side of the submission ledger."""

    @abstractmethod
    async def fetch_history(self, worker_id: str) -> List[HistoricalRecord]:
        pass


def score_history(
    duration: int,
    size_bytes: int,
    now: datetime,
    history: Sequence[HistoricalRecord],
) -> Tuple[AnomalyLabel, ...]:
    """Pure scoring over an already-fetched history."""
    if len(history) < MIN_HISTORY:
        return ()

    avg_duration = sum(r.duration for r in history) / len(history)

    anomalies = []
    if abs(duration - avg_duration) > DURATION_DEVIATION_SECONDS:
        anomalies.append(AnomalyLabel.UNUSUAL_DURATION)

    if size_bytes < MIN_FILE_SIZE_BYTES:
        anomalies.append(AnomalyLabel.TOO_SMALL_FILE)

    recent = [r for r in history if now - r.recorded_at <= FAST_WINDOW]
    if len(recent) >= FAST_MIN_RECORDS:
        anomalies.append(AnomalyLabel.TOO_FAST_SUBMISSION)

    return ordered_anomalies(anomalies)


class AnomalyScorer:
    """
    Scores submissions against ledger history.

    Args:
        history: Ledger read side
        call_timeout: Cap in seconds for the history query
    """

    def __init__(self, history: HistorySource, call_timeout: float = 10.0):
        self.history = history
        self.call_timeout = call_timeout

    async def score(
        self,
        worker_id: str,
        duration: int,
        size_bytes: int,
        now: datetime,
        deadline: Deadline,
    ) -> Tuple[AnomalyLabel, ...]:
        records = await bounded(
            self.history.fetch_history(worker_id),
            deadline,
            LedgerTimeout,
            "ledger fetch_history",
            cap=self.call_timeout,
        )
        anomalies = score_history(duration, size_bytes, now, records)
        if anomalies:
            logger.info(
                f"Worker {worker_id}: {len(anomalies)} anomalies over {len(records)} records "
                f"({', '.join(a.value for a in anomalies)})"
            )
        return anomalies
