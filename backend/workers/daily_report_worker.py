"""
Daily Report Worker
===================

Sends the admin a summary of the day's submissions once per day at the
configured local hour (default 18:00).

Checks the clock every CHECK_INTERVAL seconds. The report for a given
local date is sent at most once, even if a check lands twice inside the
report hour.
"""
import asyncio
import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Callable, Optional

from services.reporting import ReportingService, daily_summary_text
from services.telegram_client import TelegramClient, TransportError
from vigil.errors import LedgerError

logger = logging.getLogger(__name__)

CHECK_INTERVAL = 60  # seconds


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DailyReportWorker:
    """
    Periodic daily summary sender.

    Args:
        reporting: Ledger aggregation
        telegram: Bot API client
        admin_id: Recipient chat id
        tz: Local timezone that defines the report hour and day
        report_hour: Local hour (0-23) at which to send
        clock: Returns the current aware datetime
    """

    def __init__(
        self,
        reporting: ReportingService,
        telegram: TelegramClient,
        admin_id: str,
        tz: tzinfo,
        report_hour: int = 18,
        clock: Callable[[], datetime] = utc_now,
        check_interval: float = CHECK_INTERVAL,
    ):
        self.reporting = reporting
        self.telegram = telegram
        self.admin_id = admin_id
        self.tz = tz
        self.report_hour = report_hour
        self.clock = clock
        self.check_interval = check_interval
        self.last_sent: Optional[date] = None
        self.running = False

    async def tick(self) -> bool:
        """
        Send today's report if it is due.

        Returns:
            True if a report was sent
        """
        local_now = self.clock().astimezone(self.tz)
        today = local_now.date()

        if local_now.hour != self.report_hour or self.last_sent == today:
            return False

        summary = await self.reporting.daily_summary(today)
        await self.telegram.send_message(
            self.admin_id, daily_summary_text(summary), parse_mode='Markdown'
        )
        self.last_sent = today
        logger.info(f"Daily report for {today} sent ({summary.videos} videos)")
        return True

    async def start(self):
        self.running = True
        logger.info(
            f"Daily report worker started (hour={self.report_hour}, tz={self.tz})"
        )
        while self.running:
            try:
                await self.tick()
            except (TransportError, LedgerError) as e:
                logger.error(f"Daily report failed: {e}", exc_info=True)
            await asyncio.sleep(self.check_interval)

    def stop(self):
        self.running = False
