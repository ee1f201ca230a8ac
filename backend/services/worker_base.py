"""
Base worker class for queue-driven workers

Combines:
- Redis queue consumption (BRPOP)
- Signal handling (graceful shutdown)
- Per-job error isolation: one bad job never stops the loop
"""
import asyncio
import signal
import logging
from typing import Any, Optional

from services.job_queue import JobQueue

logger = logging.getLogger(__name__)


class BaseWorker:
    """
    Base class for queue workers

    Loop:
    1. BRPOP from queue (blocks until job available or timeout)
    2. prepare(job) → work item, or None to skip the job
    3. process(item)

    Subclasses implement prepare() and process().
    """

    def __init__(
        self,
        job_queue: JobQueue,
        worker_name: str,
        queue_name: str,
        dequeue_timeout: int = 5,
    ):
        self.job_queue = job_queue
        self.worker_name = worker_name
        self.queue_name = queue_name
        self.dequeue_timeout = dequeue_timeout
        self.running = False
        self.jobs_processed = 0
        self.jobs_skipped = 0
        self.jobs_failed = 0

    async def start(self, handle_signals: bool = True):
        """Main worker loop"""
        if handle_signals:
            self._setup_signal_handlers()

        self.running = True
        logger.info(f"[{self.worker_name}] Started, listening on {self.queue_name}")

        while self.running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                logger.info(f"[{self.worker_name}] Received cancellation signal")
                break
            except Exception as e:
                # Queue itself unreachable: back off and retry
                logger.error(f"[{self.worker_name}] Worker loop error: {e}", exc_info=True)
                await asyncio.sleep(1)

        logger.info(
            f"[{self.worker_name}] Shutting down. "
            f"Processed: {self.jobs_processed}, Skipped: {self.jobs_skipped}, "
            f"Failed: {self.jobs_failed}"
        )

    async def run_once(self) -> bool:
        """
        Consume at most one job.

        Returns:
            True if a job was dequeued
        """
        job = await self.job_queue.dequeue(self.queue_name, timeout=self.dequeue_timeout)
        if not job:
            return False

        logger.debug(f"[{self.worker_name}] Received job: {job}")

        try:
            item = await self.prepare(job)
            if item is None:
                self.jobs_skipped += 1
                return True

            await self.process(item)
            self.jobs_processed += 1

        except Exception as e:
            self.jobs_failed += 1
            logger.error(f"[{self.worker_name}] Job failed: {e}", exc_info=True)
            await self.handle_error(job, e)

        return True

    def stop(self):
        self.running = False

    def _setup_signal_handlers(self):
        """Setup graceful shutdown on SIGTERM/SIGINT"""
        def shutdown_handler(signum, frame):
            logger.info(f"[{self.worker_name}] Received signal {signum}, shutting down...")
            self.running = False

        signal.signal(signal.SIGTERM, shutdown_handler)
        signal.signal(signal.SIGINT, shutdown_handler)

    async def prepare(self, job: dict) -> Optional[Any]:
        """
        Override in subclass - validate the job

        Returns:
            Work item for process(), or None to skip the job
        """
        raise NotImplementedError(f"{self.__class__.__name__} must implement prepare()")

    async def process(self, item: Any):
        """Override in subclass - do the actual work"""
        raise NotImplementedError(f"{self.__class__.__name__} must implement process()")

    async def handle_error(self, job: dict, error: Exception):
        """
        Handle job processing error

        Default: nothing beyond the log line in run_once().
        Override in subclass for custom handling.
        """
