"""
Decision Coordinator.

Runs the scorer and the classifier for one submission and merges them
into a Verdict. The scorer only reads, so it runs first: if the ledger
is down the window is never written.

Failures come back as a typed Decision instead of an exception, so the
caller can tell "not a duplicate" from "undetermined". The coordinator
keeps nothing after returning; a caller that cannot record a decided
submission calls retract() so the window forgets it.
"""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .classifier import DuplicateClassifier
from .deadline import Deadline
from .errors import ProcessingFailure
from .scorer import AnomalyScorer
from .types import Submission, Verdict

logger = logging.getLogger(__name__)


class DecisionStatus(Enum):
    DECIDED = "decided"
    UNDETERMINED = "undetermined"


@dataclass(frozen=True)
class Decision:
    """Coordinator output: a verdict, or the failure that prevented one."""
    status: DecisionStatus
    verdict: Optional[Verdict] = None
    failure: Optional[ProcessingFailure] = None

    @property
    def decided(self) -> bool:
        return self.status == DecisionStatus.DECIDED

    @property
    def is_suspicious(self) -> bool:
        return self.decided and self.verdict.is_suspicious


class WorkerLocks:
    """Per-worker asyncio locks, dropped once nobody holds or waits on them."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, worker_id: str):
        lock = self._locks.setdefault(worker_id, asyncio.Lock())
        self._users[worker_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[worker_id] -= 1
            if self._users[worker_id] == 0:
                del self._users[worker_id]
                del self._locks[worker_id]

    def __len__(self) -> int:
        return len(self._locks)


class DecisionCoordinator:
    """
    Orchestrates classifier + scorer per submission.

    Args:
        classifier: Duplicate classifier (owns the window)
        scorer: Anomaly scorer (reads the ledger)
        budget_seconds: Total I/O budget for one decision
    """

    def __init__(
        self,
        classifier: DuplicateClassifier,
        scorer: AnomalyScorer,
        budget_seconds: float = 15.0,
    ):
        self.classifier = classifier
        self.scorer = scorer
        self.budget_seconds = budget_seconds
        self.locks = WorkerLocks()

    async def decide(self, submission: Submission) -> Decision:
        # Two submissions from one worker must not both pass the
        # "not yet seen" checks before either commits
        async with self.locks.hold(submission.worker_id):
            deadline = Deadline(self.budget_seconds)
            try:
                anomalies = await self.scorer.score(
                    submission.worker_id,
                    submission.duration,
                    submission.size_bytes,
                    submission.received_at,
                    deadline,
                )
                classification = await self.classifier.classify(
                    submission.worker_id,
                    submission.fingerprint,
                    submission.duration,
                    submission.received_at,
                    deadline,
                )
            except ProcessingFailure as e:
                logger.warning(
                    f"Submission {submission.fingerprint} from worker {submission.worker_id} "
                    f"undetermined: {e}"
                )
                return Decision(status=DecisionStatus.UNDETERMINED, failure=e)

        verdict = Verdict.from_parts(classification, anomalies)
        logger.info(
            f"Worker {submission.worker_id}: {verdict.status_label}, "
            f"anomalies={list(verdict.anomaly_values)}"
        )
        return Decision(status=DecisionStatus.DECIDED, verdict=verdict)

    async def retract(self, submission: Submission, verdict: Verdict) -> bool:
        """
        Undo the window writes of a decided submission that was not recorded.

        Duplicates wrote nothing, so there is nothing to undo for them.

        Returns:
            True if the window no longer holds the submission
        """
        if verdict.is_duplicate:
            return True

        async with self.locks.hold(submission.worker_id):
            try:
                await self.classifier.forget(
                    submission.worker_id,
                    submission.fingerprint,
                    submission.duration,
                    submission.received_at,
                    Deadline(self.budget_seconds),
                )
            except ProcessingFailure as e:
                logger.error(
                    f"Could not retract submission {submission.fingerprint} "
                    f"from worker {submission.worker_id}: {e}"
                )
                return False
        return True
