"""
Vigil - FastAPI Backend

Receives Telegram updates over a webhook, queues video notes for the
submission worker and answers admin/worker commands from the ledger.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent / '.env')

from fastapi import FastAPI

from api import telegram_webhook
from config import get_settings, create_postgres_pool, create_job_queue
from repositories import SubmissionRepository
from services.reporting import ReportingService
from services.telegram_client import TelegramClient

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(name)s] %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open connections on startup, close them on shutdown"""
    settings = get_settings()

    db_pool = await create_postgres_pool(min_size=1, max_size=5)
    ledger = SubmissionRepository(db_pool)
    await ledger.ensure_schema()

    job_queue = await create_job_queue()
    telegram = TelegramClient(
        settings.bot_token,
        api_url=settings.telegram_api_url,
        timeout=settings.telegram_timeout_seconds,
    )

    telegram_webhook.configure(
        settings,
        job_queue,
        telegram,
        ReportingService(ledger, ZoneInfo(settings.report_timezone), settings.report_timezone),
    )
    logger.info("✅ Telegram webhook ready")

    try:
        yield
    finally:
        await telegram.close()
        await job_queue.close()
        await db_pool.close()


app = FastAPI(
    title="Vigil",
    description="Duplicate and anomaly screening for worker video notes",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(telegram_webhook.router, tags=["Telegram"])


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/health")
async def api_health():
    return {"status": "ok", "service": "vigil"}
