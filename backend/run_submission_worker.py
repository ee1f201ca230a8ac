"""
Run Submission Worker

Launches the worker that decides queued video notes.
Owns every connection: the engine only receives them.
"""
import os
from pathlib import Path

# Load .env from project root (one level up from backend/)
from dotenv import load_dotenv
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

import asyncio
import logging
from zoneinfo import ZoneInfo

from config import get_settings, create_postgres_pool, create_job_queue, create_window_store
from repositories import SubmissionRepository
from services.notifications import Notifier
from services.submission_pipeline import SubmissionPipeline
from services.telegram_client import TelegramClient
from vigil import AnomalyScorer, DecisionCoordinator, DuplicateClassifier
from workers.submission_worker import SubmissionWorker

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main():
    """Main worker entry point"""
    settings = get_settings()
    worker_name = os.getenv('WORKER_NAME', 'submission-1')

    # Connect to PostgreSQL (ledger)
    db_pool = await create_postgres_pool(min_size=2, max_size=5)
    ledger = SubmissionRepository(db_pool)
    await ledger.ensure_schema()

    # Connect to Redis (window + job queue)
    window = await create_window_store()
    job_queue = await create_job_queue()

    telegram = TelegramClient(
        settings.bot_token,
        api_url=settings.telegram_api_url,
        timeout=settings.telegram_timeout_seconds,
    )

    coordinator = DecisionCoordinator(
        classifier=DuplicateClassifier(window, call_timeout=settings.store_timeout_seconds),
        scorer=AnomalyScorer(ledger, call_timeout=settings.ledger_timeout_seconds),
        budget_seconds=settings.decision_budget_seconds,
    )
    pipeline = SubmissionPipeline(
        coordinator,
        ledger,
        Notifier(telegram, settings.admin_id, tz=ZoneInfo(settings.report_timezone)),
        ledger_timeout=settings.ledger_timeout_seconds,
    )

    worker = SubmissionWorker(
        job_queue,
        pipeline,
        queue_name=settings.submission_queue,
        worker_name=worker_name,
    )

    logger.info(f"Starting submission worker {worker_name}")

    try:
        await worker.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    finally:
        # Cleanup
        await telegram.close()
        await job_queue.close()
        await window.close()
        await db_pool.close()
        logger.info("Worker shut down cleanly")


if __name__ == '__main__':
    asyncio.run(main())
