"""
Submission Worker - decides queued video notes

Consumes submission jobs queued by the Telegram webhook and runs each
through the SubmissionPipeline (engine → alert → ledger → notifications).

One process per queue: submissions are handled one at a time, in order.
The coordinator's per-worker locks keep that safe if handling is ever
made concurrent inside the process.
"""
import logging
from typing import Optional

from models.domain.submission import submission_from_job
from services.job_queue import JobQueue
from services.submission_pipeline import SubmissionPipeline
from services.worker_base import BaseWorker
from vigil.errors import MalformedSubmission
from vigil.types import Submission

logger = logging.getLogger(__name__)


class SubmissionWorker(BaseWorker):
    """Queue worker around SubmissionPipeline"""

    def __init__(
        self,
        job_queue: JobQueue,
        pipeline: SubmissionPipeline,
        queue_name: str = JobQueue.SUBMISSION_QUEUE,
        worker_name: str = "submission-1",
    ):
        super().__init__(job_queue, worker_name=worker_name, queue_name=queue_name)
        self.pipeline = pipeline
        self.decided = 0
        self.undetermined = 0

    async def prepare(self, job: dict) -> Optional[Submission]:
        try:
            return submission_from_job(job)
        except MalformedSubmission as e:
            logger.warning(f"[{self.worker_name}] Dropping malformed job: {e}")
            return None

    async def process(self, submission: Submission):
        result = await self.pipeline.handle(submission)
        if result.decision.decided:
            self.decided += 1
        else:
            self.undetermined += 1
