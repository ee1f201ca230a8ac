"""
Submission notifications

Renders and sends the three messages a decided submission produces:
- acknowledgment to the submitter
- summary to the admin (followed by a forward of the original note)
- suspicious-worker alert to the admin (2+ anomalies)

Infrastructure failures only ever produce the generic failure reply;
they never reach the admin.
"""
import logging
from datetime import datetime, tzinfo
from typing import Optional

from services.telegram_client import TelegramClient
from vigil.types import Submission, Verdict

logger = logging.getLogger(__name__)

ACK_RECEIVED = "✅ Video received successfully!"
ACK_FAILED = "❌ Something went wrong, please try again"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_MARKDOWN_SPECIALS = ('_', '*', '`', '[')


def escape_markdown(text: str) -> str:
    """Escape legacy Markdown control characters"""
    for ch in _MARKDOWN_SPECIALS:
        text = text.replace(ch, f"\\{ch}")
    return text


def format_timestamp(when: datetime, tz: Optional[tzinfo] = None) -> str:
    if tz is not None:
        when = when.astimezone(tz)
    return when.strftime(TIMESTAMP_FORMAT)


def anomaly_list(verdict: Verdict) -> str:
    return ", ".join(label.display for label in verdict.anomalies)


def suspicious_alert_text(submission: Submission, verdict: Verdict, when: str) -> str:
    """Markdown alert for a suspicious worker"""
    username = escape_markdown(submission.username or "no_username")
    return (
        f"⚠️ *Suspicious worker!*\n"
        f"👤 @{username} (ID: {submission.worker_id})\n"
        f"🚨 Anomalies: {anomaly_list(verdict)}\n"
        f"📅 {when}"
    )


def admin_summary_text(submission: Submission, verdict: Verdict, when: str) -> str:
    """Plain-text admin summary for every decided submission"""
    headline = "⚠️ Duplicate video" if verdict.is_duplicate else "🆕 New video"
    size_kb = round(submission.size_bytes / 1024)
    text = (
        f"🎥 {headline}\n"
        f"👤 {submission.sender_label} (ID: {submission.worker_id})\n"
        f"⏱ {submission.duration} s | {size_kb} KB\n"
        f"📅 {when}\n"
    )
    if verdict.is_duplicate:
        text += f"🔁 Reason: {verdict.duplicate_reason.value}\n"
    if verdict.anomalies:
        text += f"\n🚨 Anomalies: {anomaly_list(verdict)}"
    return text


class Notifier:
    """
    Sends submission notifications through Telegram.

    Args:
        client: Bot API client
        admin_id: Chat id of the administrator
        tz: Timezone for displayed timestamps
    """

    def __init__(self, client: TelegramClient, admin_id: str, tz: Optional[tzinfo] = None):
        self.client = client
        self.admin_id = admin_id
        self.tz = tz

    def _reply_chat(self, submission: Submission):
        return submission.chat_id if submission.chat_id is not None else submission.worker_id

    async def acknowledge(self, submission: Submission):
        await self.client.send_message(self._reply_chat(submission), ACK_RECEIVED)

    async def acknowledge_failure(self, submission: Submission):
        await self.client.send_message(self._reply_chat(submission), ACK_FAILED)

    async def alert_suspicious(self, submission: Submission, verdict: Verdict, now: datetime):
        logger.warning(
            f"Suspicious worker {submission.worker_id}: {list(verdict.anomaly_values)}"
        )
        await self.client.send_message(
            self.admin_id,
            suspicious_alert_text(submission, verdict, format_timestamp(now, self.tz)),
            parse_mode='Markdown',
        )

    async def send_admin_summary(self, submission: Submission, verdict: Verdict, now: datetime):
        await self.client.send_message(
            self.admin_id,
            admin_summary_text(submission, verdict, format_timestamp(now, self.tz)),
        )
        if submission.chat_id is not None and submission.message_id is not None:
            await self.client.forward_message(
                self.admin_id, submission.chat_id, submission.message_id
            )
