#!/usr/bin/env python3
"""
Point the Telegram bot at the webhook endpoint.

Usage:
    python scripts/set_webhook.py https://vigil.example.com/telegram/webhook
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent.parent / '.env')

from config import get_settings
from services.telegram_client import TelegramClient, TransportError

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s')
log = logging.getLogger('set-webhook')

ALLOWED_UPDATES = ['message', 'callback_query']


async def main(url: str) -> int:
    settings = get_settings()
    client = TelegramClient(settings.bot_token, api_url=settings.telegram_api_url)
    try:
        await client.set_webhook(url, secret_token=settings.webhook_secret, allowed_updates=ALLOWED_UPDATES)
    except TransportError as e:
        log.error(f"setWebhook failed: {e}")
        return 1
    finally:
        await client.close()

    log.info("Webhook set")
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Register the Telegram webhook')
    parser.add_argument('url', help='Public URL of POST /telegram/webhook')
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.url)))
