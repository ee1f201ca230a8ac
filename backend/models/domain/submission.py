"""
Submission ledger domain model + queue job codec

LedgerEntry is one row of the submissions ledger: the submission as it
arrived plus the verdict the engine reached. Rows are append-only.

Jobs travel through Redis as JSON; submission_from_job() validates them
before anything reaches the engine.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List

from vigil.errors import MalformedSubmission
from vigil.types import Submission, Verdict, HistoricalRecord


@dataclass
class LedgerEntry:
    """
    Ledger row - storage-agnostic representation

    Storage: PostgreSQL (submissions table)
    """
    worker_id: str
    username: str
    file_id: str
    fingerprint: str
    size_bytes: int
    duration: int
    status: str
    forwarded: bool
    recorded_at: datetime
    anomalies: List[str] = field(default_factory=list)

    # Set by the ledger on insert
    id: Optional[int] = None

    @classmethod
    def from_decision(
        cls,
        submission: Submission,
        verdict: Verdict,
        recorded_at: Optional[datetime] = None,
    ) -> 'LedgerEntry':
        return cls(
            worker_id=submission.worker_id,
            username=submission.username or submission.display_name or "Unknown",
            file_id=submission.file_id,
            fingerprint=submission.fingerprint,
            size_bytes=submission.size_bytes,
            duration=submission.duration,
            status=verdict.status_label,
            forwarded=submission.forwarded,
            recorded_at=recorded_at or submission.received_at,
            anomalies=list(verdict.anomaly_values),
        )

    @property
    def is_duplicate(self) -> bool:
        return self.status.startswith("Duplicate")

    @property
    def has_anomalies(self) -> bool:
        return bool(self.anomalies)

    def to_historical(self) -> HistoricalRecord:
        return HistoricalRecord(
            worker_id=self.worker_id,
            duration=self.duration,
            size_bytes=self.size_bytes,
            recorded_at=self.recorded_at,
            status=self.status,
            anomalies=tuple(self.anomalies),
        )


# =========================================================================
# QUEUE JOB CODEC
# =========================================================================

REQUIRED_JOB_FIELDS = ('worker_id', 'fingerprint', 'duration', 'size_bytes', 'received_at')


def submission_to_job(submission: Submission) -> dict:
    """Serialize a submission for the Redis queue"""
    return {
        'worker_id': submission.worker_id,
        'fingerprint': submission.fingerprint,
        'duration': submission.duration,
        'size_bytes': submission.size_bytes,
        'received_at': submission.received_at.isoformat(),
        'forwarded': submission.forwarded,
        'file_id': submission.file_id,
        'username': submission.username,
        'display_name': submission.display_name,
        'chat_id': submission.chat_id,
        'message_id': submission.message_id,
    }


def submission_from_job(job: dict) -> Submission:
    """
    Parse and validate a queue job.

    Raises:
        MalformedSubmission: missing fields or invalid values
    """
    missing = [name for name in REQUIRED_JOB_FIELDS if job.get(name) in (None, '')]
    if missing:
        raise MalformedSubmission(f"Submission job missing fields: {', '.join(missing)}")

    try:
        duration = int(job['duration'])
        size_bytes = int(job['size_bytes'])
        received_at = datetime.fromisoformat(str(job['received_at']).replace('Z', '+00:00'))
    except (TypeError, ValueError) as e:
        raise MalformedSubmission(f"Submission job has invalid values: {e}") from e

    if duration < 0 or size_bytes < 0:
        raise MalformedSubmission(
            f"Submission job has negative duration/size: {duration}/{size_bytes}"
        )
    if received_at.tzinfo is None:
        received_at = received_at.replace(tzinfo=timezone.utc)

    return Submission(
        worker_id=str(job['worker_id']),
        fingerprint=str(job['fingerprint']),
        duration=duration,
        size_bytes=size_bytes,
        received_at=received_at,
        forwarded=bool(job.get('forwarded', False)),
        file_id=str(job.get('file_id') or ''),
        username=job.get('username'),
        display_name=job.get('display_name'),
        chat_id=job.get('chat_id'),
        message_id=job.get('message_id'),
    )
