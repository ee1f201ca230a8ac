"""
Run Daily Report Worker

Sends the admin the daily submission summary at the configured hour.
"""
from pathlib import Path

from dotenv import load_dotenv
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

import asyncio
import logging
from zoneinfo import ZoneInfo

from config import get_settings, create_postgres_pool
from repositories import SubmissionRepository
from services.reporting import ReportingService
from services.telegram_client import TelegramClient
from workers.daily_report_worker import DailyReportWorker

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [daily-report] %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


async def main():
    settings = get_settings()
    tz = ZoneInfo(settings.report_timezone)

    db_pool = await create_postgres_pool(min_size=1, max_size=2)
    telegram = TelegramClient(
        settings.bot_token,
        api_url=settings.telegram_api_url,
        timeout=settings.telegram_timeout_seconds,
    )

    worker = DailyReportWorker(
        reporting=ReportingService(SubmissionRepository(db_pool), tz, settings.report_timezone),
        telegram=telegram,
        admin_id=settings.admin_id,
        tz=tz,
        report_hour=settings.report_hour,
    )

    try:
        await worker.start()
    except asyncio.CancelledError:
        logger.info("Cancelled, shutting down...")
    finally:
        await telegram.close()
        await db_pool.close()


if __name__ == '__main__':
    asyncio.run(main())
