"""
Tests for engine types and deadlines.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from vigil.deadline import Deadline, bounded
from vigil.errors import LedgerTimeout, ProcessingFailure, WindowStoreTimeout
from vigil.types import (
    AnomalyLabel,
    Classification,
    DuplicateReason,
    Submission,
    Verdict,
    ordered_anomalies,
)


def test_ordered_anomalies_dedupes_and_sorts():
    labels = [
        AnomalyLabel.TOO_FAST_SUBMISSION,
        AnomalyLabel.UNUSUAL_DURATION,
        AnomalyLabel.TOO_FAST_SUBMISSION,
    ]

    assert ordered_anomalies(labels) == (
        AnomalyLabel.UNUSUAL_DURATION,
        AnomalyLabel.TOO_FAST_SUBMISSION,
    )


class TestVerdict:

    def test_status_label_new(self):
        verdict = Verdict.from_parts(Classification.novel(), [])

        assert verdict.status_label == "New"
        assert verdict.duplicate_reason == DuplicateReason.NONE

    def test_status_label_duplicate(self):
        verdict = Verdict.from_parts(Classification.duplicate(DuplicateReason.DURATION), [])

        assert verdict.status_label == "Duplicate (duration)"

    def test_suspicious_needs_two_anomalies(self):
        one = Verdict.from_parts(Classification.novel(), [AnomalyLabel.TOO_SMALL_FILE])
        two = Verdict.from_parts(
            Classification.novel(),
            [AnomalyLabel.TOO_SMALL_FILE, AnomalyLabel.UNUSUAL_DURATION],
        )

        assert not one.is_suspicious
        assert two.is_suspicious
        assert two.anomaly_values == ("unusual_duration", "too_small_file")

    def test_verdict_is_immutable(self):
        verdict = Verdict.from_parts(Classification.novel(), [])

        with pytest.raises(AttributeError):
            verdict.is_duplicate = True


class TestSubmission:

    def make(self, **kwargs):
        return Submission(
            worker_id="42",
            fingerprint="fp",
            duration=10,
            size_bytes=1,
            received_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
            **kwargs,
        )

    def test_sender_label_prefers_username(self):
        assert self.make(username="alice", display_name="Alice").sender_label == "@alice"

    def test_sender_label_falls_back(self):
        assert self.make(display_name="Alice").sender_label == "Alice"
        assert self.make().sender_label == "Unknown"


class TestDeadline:

    def test_remaining_counts_down(self):
        now = [100.0]
        deadline = Deadline(10.0, clock=lambda: now[0])

        now[0] = 104.0
        assert deadline.remaining() == 6.0
        assert deadline.timeout_for(2.0) == 2.0
        assert deadline.timeout_for(None) == 6.0

        now[0] = 111.0
        assert deadline.remaining() == 0.0
        assert deadline.expired

    @pytest.mark.asyncio
    async def test_bounded_returns_result(self):
        async def answer():
            return 42

        assert await bounded(answer(), Deadline(1.0), LedgerTimeout, "answer") == 42

    @pytest.mark.asyncio
    async def test_bounded_raises_typed_timeout(self):
        with pytest.raises(WindowStoreTimeout) as exc:
            await bounded(asyncio.sleep(10), Deadline(1.0), WindowStoreTimeout, "sleep", cap=0.01)

        assert isinstance(exc.value, ProcessingFailure)
        assert "sleep" in str(exc.value)

    @pytest.mark.asyncio
    async def test_bounded_rejects_spent_deadline(self):
        started = []

        async def work():
            started.append(True)

        with pytest.raises(LedgerTimeout):
            await bounded(work(), Deadline(0.0), LedgerTimeout, "work")

        assert started == []
