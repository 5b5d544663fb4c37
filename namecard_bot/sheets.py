"""Google Sheets persistence with header-driven row mapping.

The target tab's first row is read on every append and each header cell is
resolved to a record key (``"Full Name"`` -> ``full_name``), so columns can be
added or reordered in the sheet without a redeploy.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
from google.auth.transport import requests as google_requests
from google.oauth2 import service_account

from namecard_bot.config import SHEETS_API_BASE, SHEETS_SCOPES, SHEETS_TIMEOUT_SECONDS
from namecard_bot.models import AppendResult

if TYPE_CHECKING:
    from namecard_bot.context import AppContext

logger = logging.getLogger(__name__)

_TOKEN_URI = "https://oauth2.googleapis.com/token"

# Sheets turns "+65..." into a formula and "0123" into 123; a leading
# apostrophe keeps the cell as text.
PHONE_KEYS = frozenset({"phone", "mobile", "mobile_number", "phone_number"})

_WHITESPACE = re.compile(r"\s+")


class SheetsError(RuntimeError):
    pass


def header_to_key(header: str) -> str:
    """``"Mobile Number"`` -> ``"mobile_number"``."""
    return _WHITESPACE.sub("_", header.lower())


def iso_timestamp(now: datetime | None = None) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    now = now or datetime.now(UTC)
    return now.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_row(
    headers: Sequence[str],
    record: Mapping[str, str],
    include_timestamp: bool = True,
    now: datetime | None = None,
) -> list[str]:
    """Map a record onto the sheet's header row.

    The result always has ``len(headers)`` cells. Column 0 holds the
    timestamp when ``include_timestamp`` is set, whatever its header says.
    Unknown headers become empty cells.
    """
    row: list[str] = []
    for index, header in enumerate(headers):
        if index == 0 and include_timestamp:
            row.append(iso_timestamp(now))
            continue

        key = header_to_key(str(header))
        value = record.get(key) or ""
        if key in PHONE_KEYS and value:
            value = "'" + value
        row.append(value)
    return row


def build_credentials(email: str, private_key: str) -> service_account.Credentials:
    """Service account credentials from an email and PEM key.

    Keys stored in env vars or secret stores usually carry literal ``\\n``.
    """
    info = {
        "client_email": email,
        "private_key": private_key.replace("\\n", "\n"),
        "token_uri": _TOKEN_URI,
    }
    return service_account.Credentials.from_service_account_info(info, scopes=SHEETS_SCOPES)


class SheetsClient:
    """Minimal Sheets v4 values client: read a row, append a row."""

    def __init__(
        self,
        *,
        credentials: service_account.Credentials,
        spreadsheet_id: str,
        base_url: str = SHEETS_API_BASE,
        timeout: float = SHEETS_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not spreadsheet_id:
            raise ValueError("Spreadsheet id must not be empty")
        self._credentials = credentials
        self._spreadsheet_id = spreadsheet_id
        self._base_url = base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._token_lock = asyncio.Lock()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _auth_headers(self) -> dict[str, str]:
        async with self._token_lock:
            if not self._credentials.valid:
                loop = asyncio.get_running_loop()
                await loop.run_in_executor(None, self._credentials.refresh, google_requests.Request())
        return {"Authorization": f"Bearer {self._credentials.token}"}

    def _values_url(self, range_: str, suffix: str = "") -> str:
        return f"{self._base_url}/{self._spreadsheet_id}/values/{quote(range_, safe='!:')}{suffix}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        headers = await self._auth_headers()
        resp = await self._http.request(method, url, headers=headers, **kwargs)
        if resp.status_code >= 400:
            raise SheetsError(f"Sheets API returned HTTP {resp.status_code}: {resp.text[:200]}")
        return resp.json() if resp.content else {}

    async def get_headers(self, sheet_name: str) -> list[str]:
        data = await self._request("GET", self._values_url(f"{sheet_name}!1:1"))
        values = data.get("values") or []
        return [str(v) for v in values[0]] if values else []

    async def append_row(self, sheet_name: str, row: Sequence[str]) -> None:
        await self._request(
            "POST",
            self._values_url(sheet_name, ":append"),
            params={"valueInputOption": "USER_ENTERED"},
            json={"values": [list(row)]},
        )


async def get_sheet_headers(ctx: AppContext, sheet_name: str) -> list[str]:
    """Read the live header row of ``sheet_name``."""
    client = await ctx.sheets()
    try:
        return await client.get_headers(sheet_name)
    except Exception:
        logger.exception("Error fetching headers for sheet %s", sheet_name)
        raise


async def append_to_sheet(
    ctx: AppContext,
    record: Mapping[str, str],
    sheet_name: str,
    include_timestamp: bool = True,
) -> AppendResult:
    """Append one record as a row. Never raises; failures come back in the result."""
    try:
        headers = await get_sheet_headers(ctx, sheet_name)
        if not headers:
            raise SheetsError("No headers found in the sheet")

        row = build_row(headers, record, include_timestamp)
        client = await ctx.sheets()
        await client.append_row(sheet_name, row)
    except Exception as e:
        logger.error("Error appending to sheet %s: %s", sheet_name, e)
        return AppendResult(success=False, error=str(e))

    return AppendResult(success=True)
