"""
End-to-end engine scenarios.

Each decided submission is appended to the fake ledger the way the
submission pipeline does, so later submissions are scored against it.
"""

import pytest

from vigil.classifier import DuplicateClassifier
from vigil.coordinator import DecisionCoordinator
from vigil.scorer import AnomalyScorer
from vigil.types import AnomalyLabel, DuplicateReason

TWO_HOURS = 2 * 3600


@pytest.fixture
def coordinator(store, history):
    return DecisionCoordinator(DuplicateClassifier(store), AnomalyScorer(history))


async def submit_and_record(coordinator, history, submission):
    decision = await coordinator.decide(submission)
    assert decision.decided
    history.add(
        submission.worker_id,
        submission.duration,
        submission.received_at,
        size_bytes=submission.size_bytes,
    )
    return decision.verdict


@pytest.mark.asyncio
async def test_worker_builds_baseline_then_trips_two_anomalies(
    coordinator, history, clock, make_submission
):
    # 1st ever submission: nothing to compare against
    first = await submit_and_record(
        coordinator, history, make_submission(fingerprint="fp-0", duration=10)
    )
    assert not first.is_duplicate
    assert first.anomalies == ()

    # Five more, averaging 10s, spaced beyond the rate-limit window
    for i, duration in enumerate([8, 9, 11, 12, 10], start=1):
        clock.advance(TWO_HOURS)
        await submit_and_record(
            coordinator, history, make_submission(fingerprint=f"fp-{i}", duration=duration)
        )

    # 7th: 5s off the average and a tiny file
    clock.advance(TWO_HOURS)
    seventh = await submit_and_record(
        coordinator,
        history,
        make_submission(fingerprint="fp-7", duration=15, size_bytes=5000),
    )

    assert seventh.anomalies == (AnomalyLabel.UNUSUAL_DURATION, AnomalyLabel.TOO_SMALL_FILE)
    assert seventh.is_suspicious
    assert not seventh.is_duplicate


@pytest.mark.asyncio
async def test_burst_of_submissions(coordinator, history, clock, make_submission):
    # Build a baseline far in the past
    for _ in range(5):
        history.add("42", 10, clock.datetime.replace(year=2020))

    verdicts = []
    for i in range(4):
        verdicts.append(await submit_and_record(
            coordinator, history, make_submission(fingerprint=f"burst-{i}", duration=20 + i)
        ))
        clock.advance(5 * 60)

    assert [v.is_duplicate for v in verdicts] == [False, False, False, True]
    assert verdicts[3].duplicate_reason == DuplicateReason.TOO_MANY_VIDEOS
    # 3 ledger rows inside 30 minutes by the 4th
    assert AnomalyLabel.TOO_FAST_SUBMISSION in verdicts[3].anomalies
    assert AnomalyLabel.TOO_FAST_SUBMISSION not in verdicts[2].anomalies
