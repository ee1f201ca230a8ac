"""
TelegramClient - thin async client for the Telegram Bot API.

Only the calls the service needs:
- send_message:          replies, admin summaries, alerts
- forward_message:       copy the original video note to the admin
- answer_callback_query: acknowledge inline keyboard presses
- set_webhook:           point Telegram at our FastAPI endpoint

Usage:
    client = TelegramClient(token="123:abc")
    await client.send_message(chat_id=42, text="Received!")
    await client.close()
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Bot API call failed (network error or ok=false)."""


class TelegramClient:
    """
    Bot API client over a shared httpx.AsyncClient.

    The http client is created lazily and may be injected (tests pass an
    httpx.AsyncClient backed by httpx.MockTransport).
    """

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.telegram.org",
        timeout: float = 30.0,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.http = http

    async def _ensure_http(self) -> httpx.AsyncClient:
        if self.http is None or self.http.is_closed:
            self.http = httpx.AsyncClient(timeout=self.timeout)
        return self.http

    async def close(self):
        """Close the http client."""
        if self.http is not None and not self.http.is_closed:
            await self.http.aclose()

    async def call(self, method: str, payload: Dict[str, Any]) -> Any:
        """
        Invoke a Bot API method.

        Returns:
            The 'result' field of the response

        Raises:
            TransportError: network failure or ok=false
        """
        http = await self._ensure_http()
        url = f"{self.api_url}/bot{self.token}/{method}"
        try:
            response = await http.post(url, json=payload)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransportError(f"{method} failed: {e}") from e

        if not data.get('ok'):
            description = data.get('description', f"HTTP {response.status_code}")
            raise TransportError(f"{method} rejected: {description}")

        return data.get('result')

    async def send_message(
        self,
        chat_id,
        text: str,
        parse_mode: Optional[str] = None,
        reply_markup: Optional[dict] = None,
    ) -> dict:
        payload: Dict[str, Any] = {'chat_id': chat_id, 'text': text}
        if parse_mode:
            payload['parse_mode'] = parse_mode
        if reply_markup:
            payload['reply_markup'] = reply_markup
        return await self.call('sendMessage', payload)

    async def forward_message(self, chat_id, from_chat_id, message_id: int) -> dict:
        return await self.call('forwardMessage', {
            'chat_id': chat_id,
            'from_chat_id': from_chat_id,
            'message_id': message_id,
        })

    async def answer_callback_query(self, callback_query_id: str, text: Optional[str] = None) -> bool:
        payload: Dict[str, Any] = {'callback_query_id': callback_query_id}
        if text:
            payload['text'] = text
        return await self.call('answerCallbackQuery', payload)

    async def set_webhook(
        self,
        url: str,
        secret_token: Optional[str] = None,
        allowed_updates: Optional[List[str]] = None,
    ) -> bool:
        payload: Dict[str, Any] = {'url': url}
        if secret_token:
            payload['secret_token'] = secret_token
        if allowed_updates:
            payload['allowed_updates'] = allowed_updates
        logger.info(f"Setting Telegram webhook to {url}")
        return await self.call('setWebhook', payload)
