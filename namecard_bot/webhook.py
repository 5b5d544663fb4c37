"""Telegram webhook adapter.

Normalizes the inbound body (pre-parsed dict, raw JSON string or bytes,
depending on the host) into a TelegramUpdate, dispatches photo messages to
the extraction pipeline and always answers with a status code and body.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from namecard_bot.extraction import extract
from namecard_bot.models import TelegramUpdate

if TYPE_CHECKING:
    from namecard_bot.context import AppContext

logger = logging.getLogger(__name__)

EXTRACTING_MESSAGE = "Extracting information from the image... This may take a few seconds."
SEND_PHOTO_MESSAGE = "Please send me a photo of a business card to extract information."
FAILURE_MESSAGE = "Sorry, an error occurred while processing your request. Please try again later."


@dataclass(frozen=True)
class WebhookResponse:
    status_code: int
    body: str


def parse_update(body: Any) -> TelegramUpdate | None:
    """Decode a webhook body into an update; ``None`` for an empty body."""
    if body is None:
        return None
    if isinstance(body, bytes | bytearray):
        body = body.decode("utf-8")
    if isinstance(body, str):
        if not body.strip():
            return None
        body = json.loads(body)
    if not body:
        return None
    return TelegramUpdate.model_validate(body)


async def handle_update(body: Any, ctx: AppContext) -> WebhookResponse:
    chat_id: int | None = None

    try:
        update = parse_update(body)
        if update is None or update.message is None:
            return WebhookResponse(status_code=200, body="nothing")

        message = update.message
        chat_id = message.chat_id
        if chat_id is None:
            raise ValueError("Message has neither chat nor sender id")
        logger.info(
            "Telegram message from user=%s has_photo=%s",
            message.from_user.id if message.from_user else None,
            bool(message.photo),
        )

        telegram = await ctx.telegram()
        await telegram.send_action(chat_id, "typing")

        if message.photo:
            await telegram.send_message(chat_id, EXTRACTING_MESSAGE)
            result = await extract(message, ctx)
            await telegram.send_message(chat_id, result.message)
            logger.info("Extraction success=%s data=%s", result.success, result.raw_data)
        else:
            await telegram.send_message(chat_id, SEND_PHOTO_MESSAGE)

        return WebhookResponse(status_code=200, body="SUCCESS")
    except Exception as err:
        logger.exception("An error occurred in the telegram handler")
        await _notify_failure(ctx, chat_id)
        return WebhookResponse(status_code=500, body=f"ERROR: {err}")


async def _notify_failure(ctx: AppContext, chat_id: int | None) -> None:
    if chat_id is None:
        return
    try:
        telegram = await ctx.telegram()
        await telegram.send_message(chat_id, FAILURE_MESSAGE)
    except Exception:
        logger.warning("Failed to send error message to chat %s", chat_id, exc_info=True)
