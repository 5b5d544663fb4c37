"""Telegram Bot API client.

Every method is a JSON POST to ``{base}/bot{token}/{method}``. The bot token
is part of the URL, so URLs are never logged.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

import httpx

from namecard_bot.config import TELEGRAM_API_BASE, TELEGRAM_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class TelegramError(RuntimeError):
    """The Bot API answered with ``ok: false``."""

    def __init__(self, method: str, description: str) -> None:
        super().__init__(f"Telegram {method} failed: {description}")
        self.method = method
        self.description = description


class TelegramClient:
    def __init__(
        self,
        token: str,
        *,
        base_url: str = TELEGRAM_API_BASE,
        timeout: float = TELEGRAM_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not token:
            raise ValueError("Telegram bot token must not be empty")
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._http.aclose()

    def _method_url(self, method: str) -> str:
        return f"{self._base_url}/bot{self._token}/{method}"

    async def _call(self, method: str, payload: dict[str, Any]) -> Any:
        resp = await self._http.post(self._method_url(method), json=payload)
        try:
            data = resp.json()
        except ValueError:
            resp.raise_for_status()
            raise TelegramError(method, f"non-JSON response (HTTP {resp.status_code})") from None

        if not data.get("ok"):
            raise TelegramError(method, str(data.get("description") or f"HTTP {resp.status_code}"))
        return data.get("result")

    async def send_message(self, chat_id: int | str, text: str) -> None:
        await self._call("sendMessage", {"chat_id": chat_id, "text": text})

    async def send_action(self, chat_id: int | str, action: str = "typing") -> None:
        await self._call("sendChatAction", {"chat_id": chat_id, "action": action})

    async def send_photo(self, chat_id: int | str, photo: str, caption: str | None = None) -> None:
        payload: dict[str, Any] = {"chat_id": chat_id, "photo": photo}
        if caption:
            payload["caption"] = caption
        await self._call("sendPhoto", payload)

    async def send_batch_message(self, chat_ids: Iterable[int | str], text: str) -> None:
        """Send the same text to several chats concurrently."""
        await asyncio.gather(*(self.send_message(chat_id, text) for chat_id in chat_ids))

    async def get_file_path(self, file_id: str) -> str:
        result = await self._call("getFile", {"file_id": file_id})
        file_path = (result or {}).get("file_path")
        if not file_path:
            raise TelegramError("getFile", "response has no file_path")
        return str(file_path)

    async def resolve_file_url(self, file_id: str) -> str:
        """Turn a photo ``file_id`` into a URL the model can fetch."""
        file_path = await self.get_file_path(file_id)
        return f"{self._base_url}/file/bot{self._token}/{file_path}"

    async def register_webhook(self, url: str) -> None:
        if not url:
            raise ValueError("Webhook URL must not be empty")
        await self._call("setWebhook", {"url": url})
        logger.info("Webhook set successfully to %s", url)
