"""Name card extraction pipeline.

photo message -> Telegram file URL -> OpenAI Responses call with a single
forced tool -> decoded outcome -> formatted reply + sheet row.

The user-facing verdict reflects extraction only: a failed sheet append is
logged but the user still gets the extracted card.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from namecard_bot.config import OPENAI_MODEL, SHEET_INCLUDE_TIMESTAMP, SHEET_NAME
from namecard_bot.fields import REMARKS_KEY, TOOL_NAME, build_tools, format_record, normalize_record
from namecard_bot.models import ExtractionResult, TelegramMessage
from namecard_bot.sheets import append_to_sheet

if TYPE_CHECKING:
    from namecard_bot.context import AppContext

logger = logging.getLogger(__name__)

NO_IMAGE_MESSAGE = "No image found in the message."
NOT_A_CARD_MESSAGE = (
    "This doesn't appear to be a business card. Please upload a clear image of a business card."
)
COULD_NOT_EXTRACT_MESSAGE = (
    "I couldn't extract information from this image. "
    "Please upload a clearer image of a business card and make sure the name card is upright."
)
ERROR_MESSAGE = "An error occurred while processing the image. Please try again later."

SYSTEM_PROMPT = """You are an assistant that helps to extract structured data from name card images.

Guidelines for extraction:
- Extract the first name, full name, email, company name and mobile number.
- Compare the email name and the full name to extract the first name.
- The name could be Chinese: the last name appears at the front and the first name is the two words after it.
- Remove all spaces and special characters from the mobile number.
- For the mobile number, remove the + sign and any other non-digit character. The format should be just 6591234567 or 91234567.
"""

USER_PROMPT = """Analyze this name card and extract all structured data.

Do not reply with a text summary. Only call the function with the extracted data."""


class MalformedToolArguments(ValueError):
    """The tool call's argument payload is not a JSON object."""


@dataclass(frozen=True)
class ExtractionRequest:
    media_url: str
    caption: str | None = None


# -- Model outcome ------------------------------------------------------------


@dataclass(frozen=True)
class Completed:
    tool_name: str
    arguments: str


@dataclass(frozen=True)
class CompletedWithText:
    text: str


@dataclass(frozen=True)
class Incomplete:
    status: str | None


ModelOutcome = Completed | CompletedWithText | Incomplete


def _field(obj: Any, name: str) -> Any:
    """Read ``name`` from an SDK object or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _response_text(response: Any, output: list[Any]) -> str:
    content = _field(response, "content")
    if isinstance(content, str):
        return content.strip()
    if content:
        parts = [_field(part, "text") if not isinstance(part, str) else part for part in content]
        text = "".join(p for p in parts if isinstance(p, str))
        if text.strip():
            return text.strip()

    output_text = _field(response, "output_text")
    if isinstance(output_text, str) and output_text.strip():
        return output_text.strip()

    texts: list[str] = []
    for item in output:
        if _field(item, "type") != "message":
            continue
        for part in _field(item, "content") or []:
            text = _field(part, "text")
            if isinstance(text, str):
                texts.append(text)
    return "".join(texts).strip()


def decode_response(response: Any) -> ModelOutcome:
    """Classify a Responses API result.

    Only a first output item naming the extraction tool counts as a tool
    call; anything else with text means the model answered in prose.
    """
    status = _field(response, "status")
    if status != "completed":
        return Incomplete(status=status)

    output = list(_field(response, "output") or [])
    if output and _field(output[0], "name") == TOOL_NAME:
        return Completed(tool_name=TOOL_NAME, arguments=_field(output[0], "arguments") or "{}")

    text = _response_text(response, output)
    if text:
        return CompletedWithText(text=text)
    return Incomplete(status=status)


def parse_tool_arguments(arguments: str) -> dict[str, str]:
    try:
        payload = json.loads(arguments)
    except (TypeError, json.JSONDecodeError) as e:
        raise MalformedToolArguments(f"Tool arguments are not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise MalformedToolArguments(
            f"Tool arguments must be a JSON object, got {type(payload).__name__}"
        )
    return normalize_record(payload)


# -- Request ------------------------------------------------------------------


def build_extraction_input(request: ExtractionRequest) -> list[dict[str, Any]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "input_text", "text": USER_PROMPT},
                {"type": "input_image", "image_url": request.media_url},
            ],
        },
    ]


async def _call_model(ctx: AppContext, request: ExtractionRequest) -> Any:
    client = await ctx.openai()
    logger.info("Calling OpenAI for name card extraction model=%s", OPENAI_MODEL)
    response = await client.responses.create(
        model=OPENAI_MODEL,
        input=build_extraction_input(request),
        tools=build_tools(),
        store=False,
    )
    logger.info("OpenAI response received status=%s", _field(response, "status"))
    return response


# -- Pipeline -----------------------------------------------------------------


async def _persist(ctx: AppContext, record: dict[str, str]) -> None:
    result = await append_to_sheet(ctx, record, SHEET_NAME, SHEET_INCLUDE_TIMESTAMP)
    if result.success:
        logger.info("Data successfully saved to sheet %s", SHEET_NAME)
    else:
        logger.warning("Failed to save data to sheet %s: %s", SHEET_NAME, result.error)


async def extract(message: TelegramMessage, ctx: AppContext) -> ExtractionResult:
    """Extract a name card from a photo message and append it to the sheet."""
    if not message.photo:
        return ExtractionResult(success=False, message=NO_IMAGE_MESSAGE)

    try:
        telegram = await ctx.telegram()
        media_url = await telegram.resolve_file_url(message.photo[-1].file_id)
        request = ExtractionRequest(media_url=media_url, caption=message.caption)

        outcome = decode_response(await _call_model(ctx, request))
        if isinstance(outcome, CompletedWithText):
            return ExtractionResult(success=False, message=NOT_A_CARD_MESSAGE)
        if isinstance(outcome, Incomplete):
            logger.warning("No extraction from model (status=%s)", outcome.status)
            return ExtractionResult(success=False, message=COULD_NOT_EXTRACT_MESSAGE)

        record = parse_tool_arguments(outcome.arguments)
    except Exception as e:
        logger.exception("Name card extraction failed")
        return ExtractionResult(success=False, message=ERROR_MESSAGE, error=str(e))

    if request.caption:
        record[REMARKS_KEY] = request.caption
        logger.info("Added caption as remarks")

    await _persist(ctx, record)

    return ExtractionResult(success=True, message=format_record(record), raw_data=record)
