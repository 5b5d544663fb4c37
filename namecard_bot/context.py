"""Process-wide context owning the external API clients.

Each client is built on first use from secrets resolved through the
injected SecretResolver, then reused for every later webhook delivery.
Construction is serialized per client so concurrent deliveries never
build two handles.
"""

from __future__ import annotations

import asyncio
import logging

from openai import AsyncOpenAI

from namecard_bot.config import IS_DEV, OPENAI_TIMEOUT_SECONDS, SHEETS_TIMEOUT_SECONDS, TELEGRAM_TIMEOUT_SECONDS
from namecard_bot.secret_store import MissingSecretError, SecretResolver
from namecard_bot.sheets import SheetsClient, build_credentials
from namecard_bot.telegram import TelegramClient

logger = logging.getLogger(__name__)


class AppContext:
    def __init__(self, secrets: SecretResolver, *, dev_mode: bool = IS_DEV) -> None:
        self.secrets = secrets
        self.dev_mode = dev_mode

        self._openai: AsyncOpenAI | None = None
        self._sheets: SheetsClient | None = None
        self._telegram: TelegramClient | None = None

        self._openai_lock = asyncio.Lock()
        self._sheets_lock = asyncio.Lock()
        self._telegram_lock = asyncio.Lock()

    async def _bot_token(self) -> str:
        # Local development talks to a separate test bot when one is configured.
        if self.dev_mode:
            token = await self.secrets.get("LOCAL_TELEGRAM_BOT_TOKEN")
            if token:
                return token
        token = await self.secrets.get("TELEGRAM_BOT_TOKEN")
        if not token:
            raise MissingSecretError("TELEGRAM_BOT_TOKEN")
        return token

    async def telegram(self) -> TelegramClient:
        if self._telegram is not None:
            return self._telegram
        async with self._telegram_lock:
            if self._telegram is None:
                token = await self._bot_token()
                self._telegram = TelegramClient(token, timeout=TELEGRAM_TIMEOUT_SECONDS)
                logger.info("Telegram client initialized")
        return self._telegram

    async def openai(self) -> AsyncOpenAI:
        if self._openai is not None:
            return self._openai
        async with self._openai_lock:
            if self._openai is None:
                api_key = await self.secrets.require("OPENAI_API_KEY")
                self._openai = AsyncOpenAI(api_key=api_key, timeout=OPENAI_TIMEOUT_SECONDS)
                logger.info("OpenAI client initialized")
        return self._openai

    async def sheets(self) -> SheetsClient:
        if self._sheets is not None:
            return self._sheets
        async with self._sheets_lock:
            if self._sheets is None:
                email = await self.secrets.require("GOOGLE_SERVICE_ACCOUNT_EMAIL")
                private_key = await self.secrets.require("GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY")
                spreadsheet_id = await self.secrets.require("GOOGLE_SHEETS_ID")
                self._sheets = SheetsClient(
                    credentials=build_credentials(email, private_key),
                    spreadsheet_id=spreadsheet_id,
                    timeout=SHEETS_TIMEOUT_SECONDS,
                )
                logger.info("Sheets client initialized")
        return self._sheets

    async def aclose(self) -> None:
        """Close every client that was built."""
        if self._telegram is not None:
            await self._telegram.aclose()
            self._telegram = None
        if self._sheets is not None:
            await self._sheets.aclose()
            self._sheets = None
        if self._openai is not None:
            await self._openai.close()
            self._openai = None
