"""
Telegram Webhook Endpoint
=========================

Telegram POSTs every update here.

Endpoints:
- POST /telegram/webhook - video notes, commands, inline button presses

Routing:
- video_note message → Submission job on the Redis queue (the submission
  worker decides it; this endpoint never blocks on the engine)
- /stats, /find <q>, /panel → admin only, answered from the ledger
- /my_stats → any worker, answered from the ledger
- callback queries (stats_today, monthly_report, find_start) → admin only

Always answers 200 once the secret matches: Telegram retries anything
else, and a retried video note would be classified twice.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Request
from redis.exceptions import RedisError

from config.settings import Settings
from models.domain.submission import submission_to_job
from services.job_queue import JobQueue
from services.notifications import ACK_FAILED
from services.reporting import (
    FIND_PROMPT,
    FIND_USAGE,
    MONTHLY_REPORT_UNAVAILABLE,
    NO_RESULTS,
    NO_SUBMISSIONS,
    PANEL_KEYBOARD,
    ReportingService,
    search_text,
    stats_text,
    today_text,
    worker_stats_text,
)
from services.telegram_client import TelegramClient, TransportError
from vigil.errors import LedgerError, MalformedSubmission
from vigil.types import Submission

logger = logging.getLogger(__name__)
router = APIRouter()

# Globals (initialized on startup by main.py, or by tests)
settings: Optional[Settings] = None
job_queue: Optional[JobQueue] = None
telegram: Optional[TelegramClient] = None
reporting: Optional[ReportingService] = None


def configure(
    app_settings: Settings,
    queue: JobQueue,
    client: TelegramClient,
    reporting_service: ReportingService,
):
    """Install the collaborators used by the handlers"""
    global settings, job_queue, telegram, reporting
    settings = app_settings
    job_queue = queue
    telegram = client
    reporting = reporting_service


def submission_from_message(message: dict) -> Submission:
    """
    Build a Submission from a Telegram message carrying a video_note.

    Raises:
        MalformedSubmission: required fields missing
    """
    try:
        video_note = message['video_note']
        sender = message['from']
        return Submission(
            worker_id=str(sender['id']),
            fingerprint=video_note['file_unique_id'],
            duration=int(video_note['duration']),
            size_bytes=int(video_note.get('file_size') or 0),
            received_at=datetime.fromtimestamp(message['date'], tz=timezone.utc),
            forwarded='forward_date' in message or 'forward_origin' in message,
            file_id=video_note['file_id'],
            username=sender.get('username'),
            display_name=sender.get('first_name'),
            chat_id=message['chat']['id'],
            message_id=message['message_id'],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedSubmission(f"video_note message missing {e}") from e


def parse_command(text: str):
    """'/find@Bot alice' → ('find', 'alice')"""
    head, _, rest = text.strip().partition(' ')
    command = head[1:].split('@', 1)[0].lower()
    return command, rest.strip()


@router.post("/telegram/webhook")
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: Optional[str] = Header(None),
):
    """Receive one Telegram update"""
    if settings is None or job_queue is None or telegram is None or reporting is None:
        raise HTTPException(status_code=503, detail="Service not available")

    if settings.webhook_secret and x_telegram_bot_api_secret_token != settings.webhook_secret:
        raise HTTPException(status_code=403, detail="Invalid secret token")

    try:
        update = await request.json()
    except ValueError as e:
        logger.warning(f"Ignoring update with unreadable body: {e}")
        return {"ok": True}
    if not isinstance(update, dict):
        logger.warning(f"Ignoring update that is not an object: {type(update).__name__}")
        return {"ok": True}

    try:
        if 'callback_query' in update:
            await handle_callback(update['callback_query'])
        elif 'message' in update:
            message = update['message']
            if 'video_note' in message:
                await handle_video_note(message)
            elif (message.get('text') or '').startswith('/'):
                await handle_command(message)
    except (TransportError, LedgerError) as e:
        logger.error(f"Update {update.get('update_id')} handling failed: {e}", exc_info=True)
    except (KeyError, TypeError, AttributeError) as e:
        logger.warning(f"Update {update.get('update_id')} is malformed: {e!r}")

    return {"ok": True}


async def handle_video_note(message: dict):
    try:
        submission = submission_from_message(message)
    except MalformedSubmission as e:
        logger.warning(f"Rejected malformed video note: {e}")
        return

    try:
        await job_queue.enqueue(settings.submission_queue, submission_to_job(submission))
    except RedisError as e:
        logger.error(f"Could not queue submission from {submission.worker_id}: {e}")
        await telegram.send_message(submission.chat_id, ACK_FAILED)
        return

    logger.info(
        f"Queued video note {submission.fingerprint} from worker {submission.worker_id}"
    )


async def handle_command(message: dict):
    command, args = parse_command(message['text'])
    chat_id = (message.get('chat') or {}).get('id')
    if chat_id is None:
        logger.warning(f"Ignoring /{command} without a chat")
        return
    sender_id = message.get('from', {}).get('id')
    now = datetime.now(timezone.utc)

    if command == 'my_stats':
        stats = await reporting.worker_stats(str(sender_id), now)
        if stats is None:
            await telegram.send_message(chat_id, NO_SUBMISSIONS)
        else:
            await telegram.send_message(chat_id, worker_stats_text(stats), parse_mode='Markdown')
        return

    if command not in ('stats', 'find', 'panel'):
        return

    if not settings.is_admin(sender_id):
        logger.info(f"Ignoring /{command} from non-admin {sender_id}")
        return

    if command == 'stats':
        stats = await reporting.overall_stats(now)
        await telegram.send_message(chat_id, stats_text(stats), parse_mode='Markdown')

    elif command == 'find':
        if not args:
            await telegram.send_message(chat_id, FIND_USAGE)
            return
        entries = await reporting.search(args)
        if not entries:
            await telegram.send_message(chat_id, NO_RESULTS)
            return
        await telegram.send_message(chat_id, search_text(entries, reporting.tz), parse_mode='Markdown')

    elif command == 'panel':
        await telegram.send_message(chat_id, "🔧 Admin panel:", reply_markup=PANEL_KEYBOARD)


async def handle_callback(callback: dict):
    sender_id = callback.get('from', {}).get('id')
    chat_id = (callback.get('message') or {}).get('chat', {}).get('id', sender_id)
    action = callback.get('data')

    callback_id = callback.get('id')
    if callback_id is None:
        logger.warning(f"Ignoring callback {action} without an id")
        return

    await telegram.answer_callback_query(callback_id)

    if not settings.is_admin(sender_id):
        logger.info(f"Ignoring callback {action} from non-admin {sender_id}")
        return

    if action == 'stats_today':
        count = await reporting.today_count(datetime.now(timezone.utc))
        await telegram.send_message(chat_id, today_text(count))
    elif action == 'monthly_report':
        await telegram.send_message(chat_id, MONTHLY_REPORT_UNAVAILABLE)
    elif action == 'find_start':
        await telegram.send_message(chat_id, FIND_PROMPT)
    else:
        logger.warning(f"Unknown callback action: {action}")
