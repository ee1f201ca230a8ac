"""
Core types for the duplicate and anomaly engine.

Submission → (DuplicateClassifier, AnomalyScorer) → Verdict

All types here are immutable. A Verdict is created fresh for each
submission and handed off to the ledger and transport; the engine keeps
no reference to it afterwards.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Tuple


class DuplicateReason(Enum):
    """Why a submission was classified as a duplicate."""
    FILE_ID = "file_id"                  # Same media object seen in the window
    DURATION = "duration"                # Same exact duration seen in the window
    TOO_MANY_VIDEOS = "too_many_videos"  # Recent list already full
    NONE = "none"


class AnomalyLabel(Enum):
    """Behavioral anomaly flags. Declaration order is display order."""
    UNUSUAL_DURATION = "unusual_duration"
    TOO_SMALL_FILE = "too_small_file"
    TOO_FAST_SUBMISSION = "too_fast_submission"

    @property
    def display(self) -> str:
        return ANOMALY_DISPLAY[self]


ANOMALY_DISPLAY = {
    AnomalyLabel.UNUSUAL_DURATION: "🟡 Unusual duration",
    AnomalyLabel.TOO_SMALL_FILE: "🔴 File too small",
    AnomalyLabel.TOO_FAST_SUBMISSION: "🔴 Submitting too fast",
}


def ordered_anomalies(labels: Iterable[AnomalyLabel]) -> Tuple[AnomalyLabel, ...]:
    """Deduplicate labels and order them by declaration order."""
    present = set(labels)
    return tuple(label for label in AnomalyLabel if label in present)


@dataclass(frozen=True)
class Submission:
    """One incoming video note."""
    worker_id: str
    fingerprint: str  # Telegram file_unique_id, not a content hash
    duration: int     # seconds
    size_bytes: int
    received_at: datetime
    forwarded: bool = False

    # Transport details carried through to the ledger and notifications
    file_id: str = ""
    username: Optional[str] = None
    display_name: Optional[str] = None
    chat_id: Optional[int] = None
    message_id: Optional[int] = None

    @property
    def sender_label(self) -> str:
        """Human label: @username, else display name, else 'Unknown'"""
        if self.username:
            return f"@{self.username}"
        return self.display_name or "Unknown"


@dataclass(frozen=True)
class HistoricalRecord:
    """One ledger row for a past submission. Read-only to the engine."""
    worker_id: str
    duration: int
    size_bytes: int
    recorded_at: datetime
    status: str = ""
    anomalies: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Classification:
    """Duplicate classifier output."""
    is_duplicate: bool
    reason: DuplicateReason = DuplicateReason.NONE

    @classmethod
    def novel(cls) -> 'Classification':
        return cls(is_duplicate=False, reason=DuplicateReason.NONE)

    @classmethod
    def duplicate(cls, reason: DuplicateReason) -> 'Classification':
        return cls(is_duplicate=True, reason=reason)


# Two or more anomalies on one submission raise the admin alert
SUSPICIOUS_ANOMALY_COUNT = 2


@dataclass(frozen=True)
class Verdict:
    """Combined duplicate + anomaly classification for one submission."""
    is_duplicate: bool
    duplicate_reason: DuplicateReason
    anomalies: Tuple[AnomalyLabel, ...] = field(default_factory=tuple)

    @classmethod
    def from_parts(
        cls,
        classification: Classification,
        anomalies: Iterable[AnomalyLabel],
    ) -> 'Verdict':
        return cls(
            is_duplicate=classification.is_duplicate,
            duplicate_reason=classification.reason,
            anomalies=ordered_anomalies(anomalies),
        )

    @property
    def is_suspicious(self) -> bool:
        """Out-of-band admin alert condition."""
        return len(self.anomalies) >= SUSPICIOUS_ANOMALY_COUNT

    @property
    def status_label(self) -> str:
        """Ledger status column."""
        if self.is_duplicate:
            return f"Duplicate ({self.duplicate_reason.value})"
        return "New"

    @property
    def anomaly_values(self) -> Tuple[str, ...]:
        return tuple(label.value for label in self.anomalies)
