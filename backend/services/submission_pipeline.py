"""
Submission pipeline: decision → ledger → alert → notifications

One call per video note:
1. Ask the coordinator for a Decision. Undetermined → generic failure
   reply to the submitter, nothing recorded, no admin message.
2. Append the ledger row (under its own deadline). Failure → the window
   forgets the submission and the submitter gets the generic failure
   reply, so a resend is judged as if it were the first.
3. Suspicious verdict → alert the admin.
4. Acknowledge the submitter, send the admin summary and forward.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from models.domain.submission import LedgerEntry
from repositories.submission_repository import SubmissionRepository
from services.notifications import Notifier
from services.telegram_client import TransportError
from vigil.coordinator import Decision, DecisionCoordinator
from vigil.deadline import Deadline, bounded
from vigil.errors import LedgerError, LedgerTimeout
from vigil.types import Submission

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """What happened to one submission"""
    decision: Decision
    entry: Optional[LedgerEntry] = None

    @property
    def recorded(self) -> bool:
        return self.entry is not None


class SubmissionPipeline:
    """
    Wires the engine to its collaborators.

    Args:
        coordinator: Decision engine
        ledger: Submission ledger (append side)
        notifier: Telegram notifications
        ledger_timeout: Seconds allowed for the ledger append
    """

    def __init__(
        self,
        coordinator: DecisionCoordinator,
        ledger: SubmissionRepository,
        notifier: Notifier,
        ledger_timeout: float = 10.0,
    ):
        self.coordinator = coordinator
        self.ledger = ledger
        self.notifier = notifier
        self.ledger_timeout = ledger_timeout

    async def handle(self, submission: Submission) -> PipelineResult:
        decision = await self.coordinator.decide(submission)

        if not decision.decided:
            await self._safe_reply_failure(submission)
            return PipelineResult(decision=decision)

        verdict = decision.verdict

        entry = LedgerEntry.from_decision(submission, verdict)
        try:
            entry = await bounded(
                self.ledger.append(entry),
                Deadline(self.ledger_timeout),
                LedgerTimeout,
                "ledger append",
            )
        except LedgerError as e:
            logger.error(f"Ledger append for worker {submission.worker_id} failed: {e}")
            await self.coordinator.retract(submission, verdict)
            await self._safe_reply_failure(submission)
            return PipelineResult(decision=decision)

        if verdict.is_suspicious:
            try:
                await self.notifier.alert_suspicious(submission, verdict, submission.received_at)
            except TransportError as e:
                logger.error(f"Suspicious-worker alert for {submission.worker_id} failed: {e}")

        try:
            await self.notifier.acknowledge(submission)
            await self.notifier.send_admin_summary(submission, verdict, submission.received_at)
        except TransportError as e:
            logger.error(f"Notifications for ledger row {entry.id} failed: {e}", exc_info=True)

        return PipelineResult(decision=decision, entry=entry)

    async def _safe_reply_failure(self, submission: Submission):
        try:
            await self.notifier.acknowledge_failure(submission)
        except TransportError as e:
            logger.error(f"Failure reply to worker {submission.worker_id} failed: {e}")
