"""Outbound messaging via the Telegram Bot API.

Delivery is best-effort: errors are logged and reported as ``False``,
never raised to the caller.
"""

from abc import ABC, abstractmethod

import httpx
import structlog

from monev.config import settings

logger = structlog.get_logger()


class Notifier(ABC):
    @abstractmethod
    async def send_message(self, recipient_id: int, text: str, reply_markup: dict | None = None) -> bool:
        """Deliver ``text``; True on success."""


class TelegramNotifier(Notifier):
    """Thin Telegram Bot API client: messages, callback answers, file downloads."""

    def __init__(self, token: str | None = None, api_base: str | None = None, timeout: float | None = None):
        self.token = token if token is not None else settings.telegram_bot_token
        self.api_base = (api_base or settings.telegram_api_base).rstrip("/")
        self.timeout = timeout or settings.telegram_timeout_seconds

    @property
    def configured(self) -> bool:
        return bool(self.token)

    async def _call(self, method: str, payload: dict) -> dict | None:
        if not self.token:
            logger.warning("telegram_not_configured", method=method)
            return None
        url = f"{self.api_base}/bot{self.token}/{method}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=payload)
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("telegram_request_failed", method=method, error=str(e))
            return None
        if not data.get("ok"):
            logger.warning("telegram_api_error", method=method, description=data.get("description"))
            return None
        return data

    async def send_message(self, recipient_id: int, text: str, reply_markup: dict | None = None) -> bool:
        payload = {"chat_id": recipient_id, "text": text}
        if reply_markup:
            payload["reply_markup"] = reply_markup
        return await self._call("sendMessage", payload) is not None

    async def answer_callback(self, callback_query_id: str, text: str | None = None) -> bool:
        payload = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text
        return await self._call("answerCallbackQuery", payload) is not None

    async def download_file(self, file_id: str) -> bytes | None:
        data = await self._call("getFile", {"file_id": file_id})
        if data is None:
            return None
        path = data.get("result", {}).get("file_path")
        if not path:
            return None
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(f"{self.api_base}/file/bot{self.token}/{path}")
                resp.raise_for_status()
                return resp.content
        except httpx.HTTPError as e:
            logger.error("telegram_download_failed", file_id=file_id, error=str(e))
            return None


def get_notifier() -> TelegramNotifier:
    return TelegramNotifier()
